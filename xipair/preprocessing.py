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
Spectrum preprocessing.

Every MS2 spectrum is cleaned up on its own first (preprocess_spectra). Afterwards each light
and heavy spectrum pair is split into the peaks shared by both spectra (common ions, not
containing the isotope labelled crosslinker) and the light peaks that reappear in the heavy
spectrum shifted by the crosslinker isotope shift (cross-link ions).
"""
from concurrent.futures import ThreadPoolExecutor
from threading import Lock
import traceback
import numpy as np
from xipair import const
from xipair.filters import ThresholdFilter, NormalizeFilter, NLargestFilter, DenoiseFilter
from xipair.spectrum_alignment import align_spectra
from xipair.utils import thread_count
from xipair.xi_logging import ProgressBar, log


class PairSpectra:
    """Preprocessed peak sets of one light/heavy spectrum pair."""

    def __init__(self, common_peaks, xlink_peaks, all_peaks):
        """
        Initialise the PairSpectra.

        :param common_peaks: (Spectrum) light peaks matched to the unshifted heavy spectrum
        :param xlink_peaks: (Spectrum) light peaks matched to the shifted heavy spectrum,
            charge annotated with the charge of the shift
        :param all_peaks: (Spectrum) common and cross-link peaks merged
        """
        self.common_peaks = common_peaks
        self.xlink_peaks = xlink_peaks
        self.all_peaks = all_peaks


def preprocess_spectra(spectra, context):
    """
    Clean up MS2 spectra before pairing.

    Zero intensity peaks are removed, the intensities normalised to a maximum of 1, the
    `max_peak_number` most intense peaks kept and finally denoised with the jumping window
    filter configured in `config.denoise`.

    :param spectra: (list of Spectrum) spectra to process
    :param context: (ContextBase) context holding the config
    :return: (list of Spectrum) processed copies
    """
    filters = [ThresholdFilter(), NormalizeFilter(), NLargestFilter(context),
               DenoiseFilter(context)]
    processed = []
    for spectrum in spectra:
        for spectrum_filter in filters:
            spectrum = spectrum_filter.process(spectrum)
        processed.append(spectrum)
    return processed


class PairPreprocessor:
    """Split light/heavy spectrum pairs into common and cross-link peaks."""

    def __init__(self, context):
        """
        Initialise the PairPreprocessor.

        :param context: (ContextBase) context holding the config and tolerances
        """
        self.context = context
        self.iso_shift = context.config.crosslinker.iso_shift
        self.n_largest = NLargestFilter(context)
        self.intensity_cutoff = const.PAIR_INTENSITY_CUTOFF

    def process(self, light, heavy):
        """
        Preprocess a single spectrum pair.

        :param light: (Spectrum) spectrum of the light crosslinker
        :param heavy: (Spectrum) spectrum of the heavy crosslinker
        :return: (PairSpectra) common, cross-link and all peaks (copies of light peaks)
        """
        if len(light) == 0 or len(heavy) == 0:
            empty = light.subset(np.array([], np.intp))
            return PairSpectra(empty, empty.subset(slice(None)), empty.subset(slice(None)))

        # common ions: same m/z in both spectra
        matches = align_spectra(light.mz_values, heavy.mz_values,
                                self.context.get_ms2_atol(), self.context.get_ms2_rtol(),
                                self.intensity_cutoff, light.int_values, heavy.int_values,
                                light.charge_values, heavy.charge_values)
        common_peaks = light.subset(matches[:, 0])

        # cross-link ions: heavy peaks shifted by the isotope shift of the charge state
        xlink_mz = []
        xlink_int = []
        xlink_charge = []
        for charge in range(1, int(light.precursor_charge) + 1):
            usable = (heavy.charge_values == 0) | (heavy.charge_values == charge)
            if not usable.any():
                continue
            shifted_mz = heavy.mz_values[usable] - self.iso_shift / charge
            trial_charges = np.full(len(shifted_mz), charge, np.int8)
            matches = align_spectra(light.mz_values, shifted_mz,
                                    self.context.get_xlink_atol(), self.context.get_xlink_rtol(),
                                    self.intensity_cutoff, light.int_values,
                                    heavy.int_values[usable], light.charge_values, trial_charges)
            # a light peak can be matched with several charges
            xlink_mz.append(light.mz_values[matches[:, 0]])
            xlink_int.append(light.int_values[matches[:, 0]])
            xlink_charge.append(np.full(len(matches), charge, np.int8))

        if len(xlink_mz) > 0:
            xlink_peaks = light.with_peaks(np.concatenate(xlink_mz), np.concatenate(xlink_int),
                                           np.concatenate(xlink_charge))
        else:
            xlink_peaks = light.subset(np.array([], np.intp))

        common_peaks = self.n_largest.process(common_peaks)
        xlink_peaks = self.n_largest.process(xlink_peaks)

        # stable m/z sort in Spectrum keeps common before cross-link peaks on equal m/z
        all_peaks = light.with_peaks(
            np.concatenate([common_peaks.mz_values, xlink_peaks.mz_values]),
            np.concatenate([common_peaks.int_values, xlink_peaks.int_values]),
            np.concatenate([common_peaks.charge_values, xlink_peaks.charge_values]))

        return PairSpectra(common_peaks, xlink_peaks, all_peaks)


def preprocess_pairs(pairs, spectra, context):
    """
    Preprocess all spectrum pairs in parallel.

    :param pairs: (list of SpectrumPair) light/heavy scan index pairs
    :param spectra: (list of Spectrum) scan ordered spectra
    :param context: (ContextBase) context holding the config
    :return: (list of PairSpectra) one entry per pair, in the order of the pairs, None for
        pairs that failed to preprocess
    """
    preprocessor = PairPreprocessor(context)
    results = [None] * len(pairs)
    bar = ProgressBar("Preprocessing %d spectrum pairs" % len(pairs), len(pairs))
    bar_lock = Lock()

    def process_pair(pair_index):
        pair = pairs[pair_index]
        # every worker writes its own slot only
        try:
            results[pair_index] = preprocessor.process(spectra[pair.light], spectra[pair.heavy])
        except Exception:
            log("Preprocessing of spectrum pair %d (light scan index %d, heavy scan index %d) "
                "failed:\n%s" % (pair_index, pair.light, pair.heavy, traceback.format_exc()))
        with bar_lock:
            bar.next()

    with ThreadPoolExecutor(max_workers=thread_count(context.config.threads)) as executor:
        list(executor.map(process_pair, range(len(pairs))))
    bar.finish()
    log(f"Preprocessed {len(pairs)} spectrum pairs")
    return results
