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

"""Enumeration of cross-link, loop-link and mono-link precursor masses."""
import numpy as np
from xipair import dtypes
from xipair.utils import tolerance_window
from xipair.xi_logging import log


def filter_peptides_by_mass(peptide_db, max_precursor_mass, linker_mass, context):
    """
    Drop peptides too heavy to be part of any observed precursor.

    The heaviest single peptide that fits is a loop-link of the largest precursor.

    :param peptide_db: (PeptideDatabase) mass sorted peptide table
    :param max_precursor_mass: (float) largest observed precursor mass
    :param linker_mass: (float) mass of the light crosslinker
    :param context: (ContextBase) context holding the precursor tolerance
    :return: (PeptideDatabase) the leading (lighter) part of the table, indices unchanged
    """
    max_peptide_mass = max_precursor_mass - linker_mass + context.ms1_error(max_precursor_mass)
    n_peptides = np.searchsorted(peptide_db.masses, max_peptide_mass, side='right')
    return peptide_db.take(np.arange(n_peptides))


def _precursor_hit(candidate_masses, precursors, atol, rtol):
    """True for each candidate mass with an observed precursor within its error window."""
    low, high = tolerance_window(candidate_masses, atol, rtol)
    lower = np.searchsorted(precursors, low, side='left')
    upper = np.searchsorted(precursors, high, side='right')
    return upper > lower


def enumerate_cross_links(peptide_db, linker_mass, mono_link_masses, precursors, atol, rtol):
    """
    Enumerate all candidate masses that match an observed precursor.

    For every peptide p1 and every p2 >= p1 (table order) the candidates are
        - mono-links p1 + mono-link mass (p1 needs a site for either crosslinker end),
        - loop-links p1 + linker (sites for both ends on different residues of p1),
        - cross-links p1 + p2 + linker (sites for both ends, in either orientation).
    A candidate mass c is kept if an observed precursor lies within c +- (atol + rtol * c).

    :param peptide_db: (PeptideDatabase) mass sorted peptide table
    :param linker_mass: (float) mass of the light crosslinker
    :param mono_link_masses: (list of float) masses of the crosslinker reacted on one end only
    :param precursors: (ndarray float64) sorted observed precursor masses
    :param atol: (float) absolute precursor tolerance
    :param rtol: (float) relative precursor tolerance
    :return: (ndarray, dtypes.xl_precursor) candidates sorted by mass, alpha and beta index
    """
    precursors = np.asarray(precursors, dtype=np.float64)
    masses = peptide_db.masses
    n_peptides = len(masses)
    if n_peptides == 0 or len(precursors) == 0:
        return np.empty(0, dtypes.xl_precursor)

    has_site1 = np.array([len(s) > 0 for s in peptide_db.sites[0]], dtype=bool)
    has_site2 = np.array([len(s) > 0 for s in peptide_db.sites[1]], dtype=bool)
    has_site = has_site1 | has_site2
    # the two ends attach to different residues, in either order
    can_loop = np.array([any(p != q for p in s1 for q in s2)
                         for s1, s2 in zip(*peptide_db.sites)], dtype=bool)

    # any candidate mass c with a hit satisfies c_min <= c <= c_max
    c_min = (precursors[0] - atol) / (1 + rtol)
    c_max = (precursors[-1] + atol) / (1 - rtol)

    candidate_masses = []
    alpha_indices = []
    beta_indices = []

    # mono-links
    for mono_mass in mono_link_masses:
        mono_masses = masses + mono_mass
        hits = np.nonzero(has_site & _precursor_hit(mono_masses, precursors, atol, rtol))[0]
        candidate_masses.append(mono_masses[hits])
        alpha_indices.append(hits)
        beta_indices.append(np.full(len(hits), -1, np.intp))

    # loop-links
    loop_masses = masses + linker_mass
    hits = np.nonzero(can_loop & _precursor_hit(loop_masses, precursors, atol, rtol))[0]
    candidate_masses.append(loop_masses[hits])
    alpha_indices.append(hits)
    beta_indices.append(np.full(len(hits), -1, np.intp))

    # cross-links
    for p1 in range(n_peptides):
        if not has_site[p1]:
            continue
        first = max(p1, np.searchsorted(masses, c_min - masses[p1] - linker_mass, side='left'))
        last = np.searchsorted(masses, c_max - masses[p1] - linker_mass, side='right')
        if last <= first:
            continue
        p2 = np.arange(first, last)
        cross_masses = masses[p1] + masses[p2] + linker_mass
        compatible = (has_site1[p1] & has_site2[p2]) | (has_site2[p1] & has_site1[p2])
        hits = np.nonzero(compatible & _precursor_hit(cross_masses, precursors, atol, rtol))[0]
        candidate_masses.append(cross_masses[hits])
        alpha_indices.append(np.full(len(hits), p1, np.intp))
        beta_indices.append(p2[hits])

    enumerated = np.empty(sum(len(m) for m in candidate_masses), dtypes.xl_precursor)
    enumerated['precursor_mass'] = np.concatenate(candidate_masses)
    enumerated['alpha_index'] = np.concatenate(alpha_indices)
    enumerated['beta_index'] = np.concatenate(beta_indices)

    order = np.lexsort((enumerated['beta_index'], enumerated['alpha_index'],
                        enumerated['precursor_mass']))
    enumerated = enumerated[order]
    log(f"Enumerated {len(enumerated)} precursor candidates")
    return enumerated
