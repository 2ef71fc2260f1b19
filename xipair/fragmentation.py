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
Theoretical spectra of cross-link candidates.

Fragments of a chain are split into common ions (not containing the link site, identical for
the light and heavy crosslinker) and cross-link ions (containing the link site and therefore
carrying the partner peptide and the crosslinker).
"""
import numpy as np
from xipair import const, dtypes
from xipair.candidates import LinkType

MAX_ISOTOPE = 2


def _ion_peaks(neutral_masses, ion_types, idx, charges, pep_id, xlink):
    """
    Expand fragments into peaks of all charges and isotopes.

    :param neutral_masses: (ndarray float64) neutral fragment masses
    :param ion_types: (ndarray S1) ion type per fragment
    :param idx: (ndarray int) fragment numbers
    :param charges: (range) charge states to generate
    :param pep_id: (int) chain (0 alpha, 1 beta)
    :param xlink: (bool) cross-link fragments
    :return: (ndarray, dtypes.theoretical_peaks) unsorted peaks
    """
    charges = np.asarray(list(charges), np.uint8)
    n_fragments = len(neutral_masses)
    n_peaks = n_fragments * len(charges) * MAX_ISOTOPE
    peaks = np.empty(n_peaks, dtypes.theoretical_peaks)
    if n_peaks == 0:
        return peaks

    # fragment x charge x isotope
    peak_charge = np.repeat(np.tile(charges, n_fragments), MAX_ISOTOPE)
    fragment = np.repeat(np.arange(n_fragments), len(charges) * MAX_ISOTOPE)
    isotope = np.tile(np.arange(MAX_ISOTOPE, dtype=np.uint8), n_fragments * len(charges))

    peaks['mz'] = (neutral_masses[fragment] + isotope * const.C12C13_MASS_DIFF
                   + peak_charge * const.PROTON_MASS) / peak_charge
    peaks['charge'] = peak_charge
    peaks['ion_type'] = ion_types[fragment]
    peaks['idx'] = idx[fragment]
    peaks['isotope'] = isotope
    peaks['pep_id'] = pep_id
    peaks['xlink'] = xlink
    return peaks


def _fragments(residue_masses, b_lengths, y_starts, mass_shift=0.0):
    """Neutral masses, ion types and numbers of b ions (by length) and y ions (by start)."""
    prefix_masses = np.cumsum(residue_masses)
    total = prefix_masses[-1]
    b_lengths = np.asarray(b_lengths, np.intp)
    y_starts = np.asarray(y_starts, np.intp)
    b_masses = prefix_masses[b_lengths - 1] if len(b_lengths) > 0 else np.empty(0)
    y_masses = total - prefix_masses[y_starts - 1] + const.H2O_MASS if len(y_starts) > 0 \
        else np.empty(0)
    neutral_masses = np.concatenate([b_masses, y_masses]) + mass_shift
    ion_types = np.array([b'b'] * len(b_lengths) + [b'y'] * len(y_starts), dtype='S1')
    idx = np.concatenate([b_lengths, len(residue_masses) - y_starts])
    return neutral_masses, ion_types, idx


def _sorted(peaks):
    return peaks[np.argsort(peaks['mz'], kind='stable')]


def common_ion_spectrum(residue_masses, link_pos, pep_id, link_pos_b=-1, max_charge=2):
    """
    Common ions of a chain: b and y ions that do not contain the link site(s).

    :param residue_masses: (ndarray float64) residue masses of the peptide
    :param link_pos: (int) link position (first position for loop-links)
    :param pep_id: (int) chain (0 alpha, 1 beta)
    :param link_pos_b: (int) second link position of loop-links, -1 otherwise
    :param max_charge: (int) highest fragment charge
    :return: (ndarray, dtypes.theoretical_peaks) peaks sorted by m/z
    """
    n_residues = len(residue_masses)
    link_end = max(link_pos, link_pos_b)
    b_lengths = np.arange(1, min(link_pos, n_residues - 1) + 1)
    y_starts = np.arange(max(link_end + 1, 1), n_residues)
    neutral_masses, ion_types, idx = _fragments(residue_masses, b_lengths, y_starts)
    return _sorted(_ion_peaks(neutral_masses, ion_types, idx, range(1, max_charge + 1),
                              pep_id, False))


def xlink_ion_spectrum(residue_masses, link_pos, precursor_mass, pep_id, min_charge,
                       max_charge, link_pos_b=-1):
    """
    Cross-link ions of a chain: b and y ions containing the link site(s).

    The fragments carry the rest of the precursor (partner peptide and crosslinker), that is
    precursor_mass minus the mass of this peptide.

    :param residue_masses: (ndarray float64) residue masses of the peptide
    :param link_pos: (int) link position (first position for loop-links)
    :param precursor_mass: (float) neutral precursor mass
    :param pep_id: (int) chain (0 alpha, 1 beta)
    :param min_charge: (int) lowest fragment charge
    :param max_charge: (int) highest fragment charge
    :param link_pos_b: (int) second link position of loop-links, -1 otherwise
    :return: (ndarray, dtypes.theoretical_peaks) peaks sorted by m/z
    """
    n_residues = len(residue_masses)
    link_end = max(link_pos, link_pos_b)
    peptide_mass = residue_masses.sum() + const.H2O_MASS
    b_lengths = np.arange(link_end + 1, n_residues)
    y_starts = np.arange(1, min(link_pos, n_residues - 1) + 1)
    neutral_masses, ion_types, idx = _fragments(residue_masses, b_lengths, y_starts,
                                                precursor_mass - peptide_mass)
    return _sorted(_ion_peaks(neutral_masses, ion_types, idx, range(min_charge, max_charge + 1),
                              pep_id, True))


class TheoreticalSpectra:
    """The four theoretical peak series of a candidate (beta series empty if not a cross-link)."""

    def __init__(self, common_alpha, common_beta, xlink_alpha, xlink_beta):
        self.common_alpha = common_alpha
        self.common_beta = common_beta
        self.xlink_alpha = xlink_alpha
        self.xlink_beta = xlink_beta

    @property
    def common(self):
        """Common ions of both chains sorted by m/z."""
        return _sorted(np.concatenate([self.common_alpha, self.common_beta]))

    @property
    def xlinks(self):
        """Cross-link ions of both chains sorted by m/z."""
        return _sorted(np.concatenate([self.xlink_alpha, self.xlink_beta]))


def theoretical_spectra(candidate, peptide_db, deltas, precursor_mass, precursor_charge):
    """
    Generate the theoretical spectra of a candidate.

    Cross-links get common ions of charge 1 to 2 and cross-link ions of charge 1 up to the
    precursor charge for both chains. Mono- and loop-links only have the alpha chain with
    cross-link ions from charge 2 up to the precursor charge.

    :param candidate: (CrossLinkCandidate) the candidate
    :param peptide_db: (PeptideDatabase) peptide table
    :param deltas: (ndarray float64) modification masses, see `mass.mod_deltas`
    :param precursor_mass: (float) observed neutral precursor mass
    :param precursor_charge: (int) precursor charge
    :return: (TheoreticalSpectra) peaks of the four series
    """
    precursor_charge = int(precursor_charge)
    empty = np.empty(0, dtypes.theoretical_peaks)
    alpha_masses = peptide_db.residue_masses(candidate.alpha_index, deltas)

    if candidate.link_type == LinkType.CROSS:
        beta_masses = peptide_db.residue_masses(candidate.beta_index, deltas)
        return TheoreticalSpectra(
            common_ion_spectrum(alpha_masses, candidate.pos_alpha, 0),
            common_ion_spectrum(beta_masses, candidate.pos_beta, 1),
            xlink_ion_spectrum(alpha_masses, candidate.pos_alpha, precursor_mass, 0, 1,
                               precursor_charge),
            xlink_ion_spectrum(beta_masses, candidate.pos_beta, precursor_mass, 1, 1,
                               precursor_charge))

    link_pos_b = candidate.pos_beta if candidate.link_type == LinkType.LOOP else -1
    return TheoreticalSpectra(
        common_ion_spectrum(alpha_masses, candidate.pos_alpha, 0, link_pos_b),
        empty,
        xlink_ion_spectrum(alpha_masses, candidate.pos_alpha, precursor_mass, 0, 2,
                           precursor_charge, link_pos_b),
        empty)
