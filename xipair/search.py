# Copyright (C) 2025  Technische Universitaet Berlin
#
# This library is free software; you can redistribute it and/or
# modify it under the terms of the GNU Lesser General Public
# License as published by the Free Software Foundation; either
# version 3 of the License, or (at your option) any later version.
#
# This library is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the GNU
# Lesser General Public License for more details.
#
# You should have received a copy of the GNU Lesser General Public
# License along with this library; if not, write to the Free Software
# Foundation, Inc., 51 Franklin Street, Fifth Floor, Boston, MA  02110-1301
# USA

"""
Search of light/heavy spectrum pairs.

PairSearch wires the pipeline together: spectra are preprocessed and paired, the peptide
table is reduced to the observed precursor mass range, cross-link candidates enumerated once
and every pair is scored in parallel against the candidates matching its precursor mass.
"""
from concurrent.futures import ThreadPoolExecutor
import threading
import traceback
from xipair.candidates import build_candidates
from xipair.context_base import ContextBase
from xipair.csm import select_top_n
from xipair.enumeration import enumerate_cross_links, filter_peptides_by_mass
from xipair.feature_pairs import (link_feature_pairs, observed_precursor_masses,
                                  read_consensus_xml)
from xipair.peptide_db import digest, read_fasta
from xipair.preprocessing import preprocess_pairs, preprocess_spectra
from xipair.scoring import PairScorer
from xipair.spectra_reader import PeakListReader
from xipair.utils import thread_count
from xipair.xi_logging import ProgressBar, debug, log

# sub-scores tracked for the diagnostic maxima
SUB_SCORES = ['score', 'pre_score', 'perc_tic', 'wtic', 'int_sum', 'match_odds', 'xcorrx',
              'xcorrc']


class PairSearch(ContextBase):
    """Search context holding the spectra, spectrum pairs and the peptide table."""

    def __init__(self, config):
        """
        Initialise the PairSearch.

        :param config: (Config) search configuration
        """
        super().__init__(config)
        self.spectra = []
        self.pairs = []
        self.peptide_db = None
        self.diagnostics = dict.fromkeys(SUB_SCORES, 0.0)
        self._thread_state = threading.local()
        self._thread_maxima = []
        self._lock = threading.Lock()

    def load_spectra(self, peaklist_files):
        """
        Read the MS2 spectra of peak list files in scan order.

        :param peaklist_files: (str | list of str) MGF/mzML files, archives or directories
        """
        reader = PeakListReader(self)
        reader.load(peaklist_files)
        self.spectra = reader.read_all()

    def load_pairs(self, consensus_file):
        """
        Pair the loaded spectra with the linked features of a consensusXML file.

        :param consensus_file: (str) path to the consensusXML file
        """
        features = read_consensus_xml(consensus_file)
        self.pairs = link_feature_pairs(features, self.spectra, self)

    def load_database(self, fasta_file, decoy_fasta_file=None):
        """
        Read and digest the protein database.

        :param fasta_file: (str) target (or target-decoy) FASTA file
        :param decoy_fasta_file: (str) optional FASTA file of decoy proteins
        """
        proteins = read_fasta(fasta_file, self)
        if decoy_fasta_file is not None:
            proteins += read_fasta(decoy_fasta_file, self, decoy=True)
        self.peptide_db = digest(proteins, self)

    def _maxima(self):
        """Diagnostic maxima of the calling thread."""
        maxima = getattr(self._thread_state, 'maxima', None)
        if maxima is None:
            maxima = dict.fromkeys(SUB_SCORES, 0.0)
            self._thread_state.maxima = maxima
            with self._lock:
                self._thread_maxima.append(maxima)
        return maxima

    def _merge_maxima(self):
        """Merge the per thread maxima into `diagnostics`."""
        self.diagnostics = dict.fromkeys(SUB_SCORES, 0.0)
        for maxima in self._thread_maxima:
            for name in SUB_SCORES:
                self.diagnostics[name] = max(self.diagnostics[name], maxima[name])
        self._thread_maxima = []
        self._thread_state = threading.local()

    def charge_filter(self, pairs, spectra):
        """True for every pair whose light precursor charge is in the configured range."""
        min_charge = self.config.precursor.min_charge
        max_charge = self.config.precursor.max_charge
        return [min_charge <= spectra[pair.light].precursor_charge <= max_charge
                for pair in pairs]

    def search(self, spectra=None, pairs=None, peptide_db=None):
        """
        Search the spectrum pairs against the peptide table.

        :param spectra: (list of Spectrum) scan ordered spectra, defaults to the loaded ones
        :param pairs: (list of SpectrumPair) spectrum pairs, defaults to the loaded ones
        :param peptide_db: (PeptideDatabase) peptide table, defaults to the loaded one
        :return: (list of list of CrossLinkSpectrumMatch) the ranked top hits of every pair,
            in the order of the pairs (empty for pairs outside the precursor charge range)
        """
        spectra = self.spectra if spectra is None else spectra
        pairs = self.pairs if pairs is None else pairs
        peptide_db = self.peptide_db if peptide_db is None else peptide_db
        if peptide_db is None:
            raise ValueError("No peptide database loaded.")
        self.spectra, self.pairs, self.peptide_db = spectra, pairs, peptide_db
        for pair in pairs:
            pair.validate(len(spectra))

        results = [[] for _ in pairs]
        selected = [i for i, in_range in enumerate(self.charge_filter(pairs, spectra))
                    if in_range]
        log(f"{len(selected)} of {len(pairs)} spectrum pairs within the precursor charge range")
        if len(selected) == 0:
            log("No spectrum pairs to search.")
            return results
        selected_pairs = [pairs[i] for i in selected]

        processed = preprocess_spectra(spectra, self)
        pair_spectra = preprocess_pairs(selected_pairs, processed, self)

        crosslinker = self.config.crosslinker
        precursors = observed_precursor_masses(selected_pairs, spectra)
        peptides = filter_peptides_by_mass(peptide_db, precursors[-1], crosslinker.mass, self)
        log(f"{len(peptides)} of {len(peptide_db)} peptides within the precursor mass range")
        enumerated = enumerate_cross_links(peptides, crosslinker.mass,
                                           crosslinker.mono_link_masses, precursors,
                                           self.get_ms1_atol(), self.get_ms1_rtol())
        if len(enumerated) == 0:
            log("No cross-link candidates match the observed precursor masses.")
            return results

        scorer = PairScorer(self, peptides)
        bar = ProgressBar("Scoring %d spectrum pairs" % len(selected_pairs),
                          len(selected_pairs))

        def search_pair(selected_index):
            pair_index = selected[selected_index]
            pair = pairs[pair_index]
            try:
                csms = self.score_pair(pair_index, processed[pair.light], pair,
                                       pair_spectra[selected_index], enumerated, peptides,
                                       scorer)
            except Exception:
                log("Scoring of spectrum pair %d (light scan index %d, heavy scan index %d) "
                    "failed:\n%s" % (pair_index, pair.light, pair.heavy, traceback.format_exc()))
                csms = []
            with self._lock:
                results[pair_index] = csms
                bar.next()

        with ThreadPoolExecutor(max_workers=thread_count(self.config.threads)) as executor:
            list(executor.map(search_pair, range(len(selected_pairs))))
        bar.finish()

        self._merge_maxima()
        debug("Maximal sub-scores: " + ", ".join(
            "%s=%.4f" % (name, value) for name, value in self.diagnostics.items()))
        n_matched = sum(1 for csms in results if len(csms) > 0)
        log(f"Found matches for {n_matched} of {len(selected_pairs)} spectrum pairs")
        return results

    def score_pair(self, pair_index, light, pair, pair_spectra, enumerated, peptides, scorer):
        """
        Score all candidates of one spectrum pair.

        :param pair_index: (int) index of the pair
        :param light: (Spectrum) preprocessed light spectrum
        :param pair: (SpectrumPair) the pair
        :param pair_spectra: (PairSpectra) preprocessed peak sets of the pair, None if
            preprocessing failed
        :param enumerated: (ndarray, dtypes.xl_precursor) mass sorted enumerated candidates
        :param peptides: (PeptideDatabase) peptide table the candidates index into
        :param scorer: (PairScorer) scorer of the peptide table
        :return: (list of CrossLinkSpectrumMatch) the ranked top hits
        """
        # failed preprocessing or too few peaks to identify a peptide
        if pair_spectra is None or \
                len(pair_spectra.all_peaks) < self.config.digestion.min_peptide_length:
            return []

        precursor_mass = light.precursor_mass
        precursor_charge = light.precursor_charge
        candidates = build_candidates(enumerated, peptides, precursor_mass,
                                      self.ms1_error(precursor_mass), self.config.crosslinker)
        if len(candidates) == 0:
            return []

        aucorr_sums = scorer.autocorrelation_sums(pair_spectra.all_peaks)
        maxima = self._maxima()
        csms = []
        for order, candidate in enumerate(candidates):
            csm = scorer.score(candidate, pair_spectra, precursor_mass, precursor_charge,
                               aucorr_sums, order)
            if csm is None:
                continue
            csm.pair_index = pair_index
            csm.scan_index_light = pair.light
            csm.scan_index_heavy = pair.heavy
            csm.precursor_mass = precursor_mass
            csm.precursor_charge = precursor_charge
            for name in SUB_SCORES:
                maxima[name] = max(maxima[name], getattr(csm, name))
            csms.append(csm)

        return select_top_n(csms, self.config.number_top_hits)
