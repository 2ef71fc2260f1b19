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

"""Cross-link candidates of a spectrum pair."""
from enum import Enum
import numpy as np


class LinkType(Enum):
    CROSS = 'cross'
    LOOP = 'loop'
    MONO = 'mono'


class CrossLinkCandidate:
    """A peptide (pair) with defined link sites for one precursor."""

    def __init__(self, alpha_index, beta_index, pos_alpha, pos_beta, link_type, linker_mass,
                 precursor_mass):
        """
        Initialise the CrossLinkCandidate.

        :param alpha_index: (int) index of the alpha (longer) peptide in the peptide table
        :param beta_index: (int) index of the beta peptide, -1 for mono- and loop-links
        :param pos_alpha: (int) link position on alpha (0-based)
        :param pos_beta: (int) link position on beta, second position for loop-links, else -1
        :param link_type: (LinkType) type of the link
        :param linker_mass: (float) crosslinker mass (the mono-link mass for mono-links)
        :param precursor_mass: (float) theoretical mass of the candidate
        """
        self.alpha_index = alpha_index
        self.beta_index = beta_index
        self.pos_alpha = pos_alpha
        self.pos_beta = pos_beta
        self.link_type = link_type
        self.linker_mass = linker_mass
        self.precursor_mass = precursor_mass

    def key(self):
        """Tuple identifying the candidate."""
        return (self.alpha_index, self.beta_index, self.pos_alpha, self.pos_beta,
                self.link_type, self.linker_mass)

    def __eq__(self, other):
        return isinstance(other, CrossLinkCandidate) and self.key() == other.key()

    def __hash__(self):
        return hash(self.key())

    def __repr__(self):
        return "CrossLinkCandidate(%d, %d, %d, %d, %s, %f)" % (
            self.alpha_index, self.beta_index, self.pos_alpha, self.pos_beta,
            self.link_type.value, self.linker_mass)


def build_candidates(enumerated, peptide_db, precursor_mass, allowed_error, crosslinker):
    """
    Build the cross-link candidates for an observed precursor mass.

    :param enumerated: (ndarray, dtypes.xl_precursor) mass sorted enumerated candidates
    :param peptide_db: (PeptideDatabase) peptide table the candidates index into
    :param precursor_mass: (float) observed neutral precursor mass
    :param allowed_error: (float) allowed precursor error in Dalton
    :param crosslinker: (Crosslinker) crosslinker config (mass, mono-link masses)
    :return: (list of CrossLinkCandidate) unique candidates in a deterministic order
    """
    lower = np.searchsorted(enumerated['precursor_mass'], precursor_mass - allowed_error,
                            side='left')
    upper = np.searchsorted(enumerated['precursor_mass'], precursor_mass + allowed_error,
                            side='right')
    sites1, sites2 = peptide_db.sites
    candidates = []
    seen = set()

    def add(candidate):
        if candidate.key() not in seen:
            seen.add(candidate.key())
            candidates.append(candidate)

    for enumerated_candidate in enumerated[lower:upper]:
        peptide1 = int(enumerated_candidate['alpha_index'])
        peptide2 = int(enumerated_candidate['beta_index'])
        candidate_mass = float(enumerated_candidate['precursor_mass'])

        if peptide2 >= 0:
            # alpha is the longer peptide, on equal length the heavier one
            length1 = peptide_db.lengths[peptide1]
            length2 = peptide_db.lengths[peptide2]
            if length2 > length1 or \
                    (length2 == length1 and peptide_db.masses[peptide2] > peptide_db.masses[peptide1]):
                peptide1, peptide2 = peptide2, peptide1
            positions = [(p, q) for p in sites1[peptide1] for q in sites2[peptide2]] + \
                [(p, q) for p in sites2[peptide1] for q in sites1[peptide2]]
            if peptide1 == peptide2:
                # homodimers: (p, q) and (q, p) are the same link
                positions = [(min(p, q), max(p, q)) for p, q in positions]
            for pos_alpha, pos_beta in positions:
                add(CrossLinkCandidate(peptide1, peptide2, int(pos_alpha), int(pos_beta),
                                       LinkType.CROSS, crosslinker.mass, candidate_mass))
            continue

        peptide_mass = peptide_db.masses[peptide1]
        if abs(precursor_mass - (peptide_mass + crosslinker.mass)) <= allowed_error:
            # either end may take the first position
            loops = sorted(set((min(p, q), max(p, q)) for p in sites1[peptide1]
                               for q in sites2[peptide1] if p != q))
            for pos1, pos2 in loops:
                add(CrossLinkCandidate(peptide1, -1, int(pos1), int(pos2), LinkType.LOOP,
                                       crosslinker.mass, candidate_mass))
        else:
            for mono_mass in crosslinker.mono_link_masses:
                if abs(precursor_mass - (peptide_mass + mono_mass)) > allowed_error:
                    continue
                for pos1 in np.union1d(sites1[peptide1], sites2[peptide1]):
                    add(CrossLinkCandidate(peptide1, -1, int(pos1), -1,
                                           LinkType.MONO, mono_mass, candidate_mass))

    return candidates
