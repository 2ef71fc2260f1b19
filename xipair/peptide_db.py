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

"""Protein database loading, digestion and the mass sorted peptide table."""
from collections import namedtuple
import re
import numpy as np
from pyteomics import fasta, parser
from xipair import mass
from xipair.modifications import Modifier
from xipair.xi_logging import ProgressBar, log

Protein = namedtuple('Protein', ['accession', 'sequence', 'description', 'decoy'])


def read_fasta(path, context, decoy=False):
    """
    Read the proteins of a FASTA file.

    :param path: (str) path to the FASTA file
    :param context: (ContextBase) context holding the config
    :param decoy: (bool) mark all proteins as decoys (separate decoy database), otherwise the
        decoy status is derived from the decoy string of the accession
    :return: (list of Protein) proteins in file order
    """
    re_accession = re.compile(context.config.fasta.re_accession)
    decoy_config = context.config.decoy
    proteins = []
    for description, sequence in fasta.read(path):
        accession_match = re_accession.match(description)
        if accession_match is not None:
            accession = accession_match.group(1)
        else:
            accession = description.split()[0] if description.strip() else description
        is_decoy = decoy or has_decoy_string(accession, decoy_config)
        proteins.append(Protein(accession, sequence.upper(), description, is_decoy))
    log(f"Read {len(proteins)} proteins from {path}")
    return proteins


def has_decoy_string(accession, decoy_config):
    """
    Check an accession for the decoy string (case-insensitive).

    :param accession: (str) protein accession
    :param decoy_config: (DecoyConfig) decoy string and whether it is a prefix or suffix
    :return: (bool) True for decoy accessions
    """
    accession = accession.lower()
    decoy_string = decoy_config.decoy_string.lower()
    if decoy_config.prefix:
        return accession.startswith(decoy_string)
    return accession.endswith(decoy_string)


def link_sites(sequence, modifications, residues, nterm, cterm):
    """
    Positions of a peptide the crosslinker can attach to with one of its ends.

    The c-terminal residue is not linkable through its side chain (it is the enzymatic
    cleavage site), modified residues are not linkable at all. The peptide termini count
    as sites if the crosslinker end reacts with them and they are not modified.

    :param sequence: (bytes) unmodified peptide sequence
    :param modifications: (ndarray uint8) modification array (index 0 nterm, 1 cterm, 2.. aa)
    :param residues: (set of str) amino acids reacting with this crosslinker end
    :param nterm: (bool) the crosslinker end reacts with the peptide n-terminus
    :param cterm: (bool) the crosslinker end reacts with the peptide c-terminus
    :return: (ndarray intp) sorted linkable positions
    """
    length = len(sequence)
    sites = [k for k in range(length - 1)
             if chr(sequence[k]) in residues and modifications[k + 2] == 0]
    if nterm and modifications[0] == 0 and 0 not in sites:
        sites.insert(0, 0)
    if cterm and modifications[1] == 0 and (length - 1) not in sites:
        sites.append(length - 1)
    return np.array(sites, np.intp)


class PeptideDatabase:
    """
    Peptides sorted by mass with their crosslinker attachment sites.

    Peptide indices are positions in this table. The order is ascending by mass and,
    for equal masses, by sequence.
    """

    def __init__(self, sequences, masses, sites1, sites2, base_sequences=None,
                 modifications=None, protein_ids=None, proteins=None):
        """
        Initialise the PeptideDatabase. All arrays must already be in table order.

        :param sequences: (list or ndarray of bytes) modX sequences
        :param masses: (ndarray float64) neutral monoisotopic masses
        :param sites1: (list of ndarray intp) positions linkable by the first crosslinker end
        :param sites2: (list of ndarray intp) positions linkable by the second crosslinker end
        :param base_sequences: (list or ndarray of bytes) unmodified sequences, defaults to
            the sequences
        :param modifications: (ndarray uint8) modification arrays (N x (L + 2))
        :param protein_ids: (list of tuple of int) indices into proteins of each peptide
        :param proteins: (list of Protein) protein records
        """
        self.sequences = np.array(sequences, dtype=bytes)
        self.masses = np.asarray(masses, dtype=np.float64)
        n_peptides = len(self.masses)
        if base_sequences is None:
            base_sequences = self.sequences
        self.base_sequences = np.array(base_sequences, dtype=bytes)
        self.lengths = np.char.str_len(self.base_sequences) if n_peptides > 0 \
            else np.zeros(0, np.intp)
        if modifications is None:
            width = int(np.amax(self.lengths, initial=0)) + 2
            modifications = np.zeros((n_peptides, width), np.uint8)
        self.modifications = modifications
        self.sites = [[np.asarray(s, np.intp) for s in sites1],
                      [np.asarray(s, np.intp) for s in sites2]]
        self.protein_ids = protein_ids if protein_ids is not None else [()] * n_peptides
        self.proteins = proteins if proteins is not None else []

    def __len__(self):
        return len(self.masses)

    def take(self, indices):
        """
        Create a new database of the selected peptides (in the given order).

        :param indices: (ndarray intp) peptide indices
        :return: (PeptideDatabase) the selected peptides
        """
        indices = np.asarray(indices, dtype=np.intp)
        return PeptideDatabase(self.sequences[indices], self.masses[indices],
                               [self.sites[0][i] for i in indices],
                               [self.sites[1][i] for i in indices],
                               self.base_sequences[indices], self.modifications[indices],
                               [self.protein_ids[i] for i in indices], self.proteins)

    def residue_masses(self, peptide_index, deltas):
        """
        Per residue masses of a peptide (modifications included).

        :param peptide_index: (int) index into the table
        :param deltas: (ndarray float64) modification masses, see `mass.mod_deltas`
        """
        return mass.residue_masses(self.base_sequences[peptide_index],
                                   self.modifications[peptide_index], deltas)

    def proteins_of(self, peptide_index):
        """Accessions of the proteins containing the peptide."""
        return [self.proteins[i].accession for i in self.protein_ids[peptide_index]]

    def is_decoy(self, peptide_index):
        """True if the peptide only occurs in decoy proteins."""
        protein_ids = self.protein_ids[peptide_index]
        if len(protein_ids) == 0:
            return False
        return all(self.proteins[i].decoy for i in protein_ids)


def digest(proteins, context):
    """
    Digest proteins into the mass sorted peptide table.

    Peptides are generated with the configured enzyme rule and missed cleavages, filtered by
    length, expanded into all modified versions and annotated with the attachment sites of
    both crosslinker ends. Peptides containing amino acids without a defined mass and
    peptides without any attachment site are dropped. Peptides occurring in several
    proteins are stored once.

    :param proteins: (list of Protein) protein records
    :param context: (ContextBase) context holding the config
    :return: (PeptideDatabase) the peptide table
    """
    config = context.config
    digestion = config.digestion
    crosslinker = config.crosslinker
    modifier = Modifier(context)

    # unmodified peptide sequence -> protein indices
    peptide_proteins = {}
    bar = ProgressBar("Digesting %d proteins" % len(proteins), len(proteins))
    for protein_index, protein in enumerate(proteins):
        cleaved = parser.cleave(protein.sequence, digestion.enzyme.rule,
                                digestion.missed_cleavages,
                                min_length=digestion.min_peptide_length, regex=True)
        for sequence in sorted(cleaved):
            if len(sequence) > digestion.max_peptide_length:
                continue
            protein_ids = peptide_proteins.setdefault(sequence, [])
            if protein_index not in protein_ids:
                protein_ids.append(protein_index)
        bar.next()
    bar.finish()

    base_sequences = []
    modx_sequences = []
    modification_arrays = []
    protein_ids = []
    width = max([len(s) for s in peptide_proteins.keys()], default=0) + 2
    for sequence in sorted(peptide_proteins.keys()):
        encoded = sequence.encode('ascii')
        if np.isnan(mass.aa_masses[np.frombuffer(encoded, np.uint8)]).any():
            continue
        for modx in modifier.modified_sequences(sequence):
            modx = modx.encode('ascii')
            base_sequence, modifications = modifier.modification_array(modx, width)
            if base_sequence is None:
                continue
            base_sequences.append(base_sequence)
            modx_sequences.append(modx)
            modification_arrays.append(modifications)
            protein_ids.append(tuple(peptide_proteins[sequence]))

    modifications = np.array(modification_arrays, np.uint8).reshape(-1, width)
    masses = mass.mass(np.array(base_sequences, dtype=bytes), modifications, config=config)

    sites1 = []
    sites2 = []
    keep = []
    for i, base_sequence in enumerate(base_sequences):
        s1 = link_sites(base_sequence, modifications[i], crosslinker.residues[0],
                        crosslinker.nterm[0], crosslinker.cterm[0])
        s2 = link_sites(base_sequence, modifications[i], crosslinker.residues[1],
                        crosslinker.nterm[1], crosslinker.cterm[1])
        if len(s1) == 0 and len(s2) == 0:
            continue
        sites1.append(s1)
        sites2.append(s2)
        keep.append(i)

    # sort by mass, then sequence
    order = sorted(range(len(keep)), key=lambda k: (masses[keep[k]], modx_sequences[keep[k]]))
    table_indices = [keep[k] for k in order]

    peptide_db = PeptideDatabase(
        [modx_sequences[i] for i in table_indices],
        masses[table_indices] if len(table_indices) > 0 else np.zeros(0),
        [sites1[k] for k in order],
        [sites2[k] for k in order],
        [base_sequences[i] for i in table_indices],
        modifications[table_indices] if len(table_indices) > 0
        else np.zeros((0, width), np.uint8),
        [protein_ids[i] for i in table_indices],
        proteins)
    log(f"Digestion yielded {len(peptide_db)} linkable peptides "
        f"({len(peptide_proteins)} unmodified sequences)")
    return peptide_db
