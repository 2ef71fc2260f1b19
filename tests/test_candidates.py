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

from xipair.candidates import CrossLinkCandidate, LinkType, build_candidates
from xipair.config import Crosslinker
from xipair.peptide_db import PeptideDatabase
from xipair import dtypes
import numpy as np

DSS = Crosslinker.DSS


def enumerated_candidates(rows):
    enumerated = np.array(rows, dtype=dtypes.xl_precursor)
    return enumerated[np.argsort(enumerated['precursor_mass'], kind='stable')]


def test_cross_link_alpha_is_the_longer_peptide():
    peptide_db = PeptideDatabase([b'AKAAR', b'GGKAAAR'], [1000.0, 1100.0], [[1], [2]],
                                 [[1], [2]])
    precursor = 2100.0 + DSS.mass
    candidates = build_candidates(enumerated_candidates([(precursor, 0, 1)]), peptide_db,
                                  precursor, 0.01, DSS)
    # both crosslinker ends react with K, the mirrored position pair is the same candidate
    assert candidates == [CrossLinkCandidate(1, 0, 2, 1, LinkType.CROSS, DSS.mass, precursor)]
    assert candidates[0].precursor_mass == precursor


def test_cross_link_alpha_on_equal_length_is_heavier():
    peptide_db = PeptideDatabase([b'AKAAR', b'GKAAR'], [1000.0, 1100.0], [[1], [1]],
                                 [[1], [1]])
    precursor = 2100.0 + DSS.mass
    candidates = build_candidates(enumerated_candidates([(precursor, 0, 1)]), peptide_db,
                                  precursor, 0.01, DSS)
    assert [(c.alpha_index, c.beta_index) for c in candidates] == [(1, 0)]


def test_heterobifunctional_orientation():
    crosslinker = Crosslinker(name='hetero', mass=100.0, iso_shift=4.0,
                              specificity=[['K'], ['D']])
    peptide_db = PeptideDatabase([b'AKAAR', b'GGADAAR'], [1000.0, 1100.0], [[1], []],
                                 [[], [3]])
    precursor = 2200.0
    candidates = build_candidates(enumerated_candidates([(precursor, 0, 1)]), peptide_db,
                                  precursor, 0.01, crosslinker)
    assert len(candidates) == 1
    assert (candidates[0].alpha_index, candidates[0].pos_alpha) == (1, 3)
    assert (candidates[0].beta_index, candidates[0].pos_beta) == (0, 1)


def test_loop_and_mono_links():
    peptide_db = PeptideDatabase([b'AKAKAR'], [1000.0], [[1, 3]], [[1, 3]])
    loop_mass = 1000.0 + DSS.mass
    mono_mass = 1000.0 + DSS.mono_link_masses[0]
    enumerated = enumerated_candidates([(loop_mass, 0, -1), (mono_mass, 0, -1)])

    loops = build_candidates(enumerated, peptide_db, loop_mass, 0.01, DSS)
    assert loops == [CrossLinkCandidate(0, -1, 1, 3, LinkType.LOOP, DSS.mass, loop_mass)]

    monos = build_candidates(enumerated, peptide_db, mono_mass, 0.01, DSS)
    assert monos == [
        CrossLinkCandidate(0, -1, 1, -1, LinkType.MONO, DSS.mono_link_masses[0], mono_mass),
        CrossLinkCandidate(0, -1, 3, -1, LinkType.MONO, DSS.mono_link_masses[0], mono_mass)]


def test_precursor_window():
    peptide_db = PeptideDatabase([b'AKAAR', b'GKAAR'], [1000.0, 1100.0], [[1], [1]],
                                 [[1], [1]])
    precursor = 2100.0 + DSS.mass
    enumerated = enumerated_candidates([(precursor, 0, 1), (2000.0 + DSS.mass, 0, 0)])
    candidates = build_candidates(enumerated, peptide_db, precursor + 0.005, 0.01, DSS)
    assert len(candidates) == 1
    assert build_candidates(enumerated, peptide_db, precursor + 0.5, 0.01, DSS) == []


def test_candidate_identity():
    first = CrossLinkCandidate(1, 0, 2, 1, LinkType.CROSS, 138.0, 2000.0)
    second = CrossLinkCandidate(1, 0, 2, 1, LinkType.CROSS, 138.0, 2000.001)
    assert first == second
    assert len({first, second}) == 1
    assert first != CrossLinkCandidate(1, 0, 2, 2, LinkType.CROSS, 138.0, 2000.0)
    assert 'cross' in repr(first)


def test_heterobifunctional_loop_link():
    crosslinker = Crosslinker(name='hetero', mass=100.0, iso_shift=4.0,
                              specificity=[['K'], ['D']])
    # the K reactive end sits after the D reactive end
    peptide_db = PeptideDatabase([b'ADAKAR'], [1000.0], [[3]], [[1]])
    candidates = build_candidates(enumerated_candidates([(1100.0, 0, -1)]), peptide_db, 1100.0,
                                  0.01, crosslinker)
    assert candidates == [CrossLinkCandidate(0, -1, 1, 3, LinkType.LOOP, 100.0, 1100.0)]


def test_mono_link_through_second_end():
    crosslinker = Crosslinker(name='hetero', mass=100.0, iso_shift=4.0, mono_link_masses=[118.0],
                              specificity=[['K'], ['D']])
    peptide_db = PeptideDatabase([b'ADAKAR'], [1000.0], [[3]], [[1]])
    candidates = build_candidates(enumerated_candidates([(1118.0, 0, -1)]), peptide_db, 1118.0,
                                  0.01, crosslinker)
    assert [c.pos_alpha for c in candidates] == [1, 3]
    assert all(c.link_type == LinkType.MONO for c in candidates)


def test_homodimer_positions_are_not_mirrored():
    peptide_db = PeptideDatabase([b'AKAKAR'], [1000.0], [[1, 3]], [[1, 3]])
    precursor = 2000.0 + DSS.mass
    candidates = build_candidates(enumerated_candidates([(precursor, 0, 0)]), peptide_db,
                                  precursor, 0.01, DSS)
    assert [(c.pos_alpha, c.pos_beta) for c in candidates] == [(1, 1), (1, 3), (3, 3)]


def test_precursor_window_matches_linear_scan():
    rng = np.random.RandomState(42)
    n_peptides = 12
    peptide_db = PeptideDatabase([b'AKAAR'] * n_peptides, [1000.0] * n_peptides,
                                 [[1]] * n_peptides, [[1]] * n_peptides)
    # quarter Dalton steps give many equal masses and exact window edges
    masses = 2000.0 + 0.25 * rng.randint(0, 40, 300)
    alpha = rng.randint(0, n_peptides, 300)
    beta = rng.randint(0, n_peptides, 300)
    enumerated = enumerated_candidates(list(zip(masses, alpha, beta)))
    allowed_error = 0.5
    targets = np.concatenate([masses[:20] - allowed_error, masses[:20] + allowed_error,
                              masses[:20], 2000.0 + rng.uniform(-1, 11, 20), [1990.0, 2020.0]])

    for target in targets:
        inside = (enumerated['precursor_mass'] >= target - allowed_error) & \
            (enumerated['precursor_mass'] <= target + allowed_error)
        lower = np.searchsorted(enumerated['precursor_mass'], target - allowed_error,
                                side='left')
        upper = np.searchsorted(enumerated['precursor_mass'], target + allowed_error,
                                side='right')
        assert upper - lower == np.count_nonzero(inside)

        expected = set(tuple(sorted((int(a), int(b))))
                       for a, b in zip(enumerated['alpha_index'][inside],
                                       enumerated['beta_index'][inside]))
        candidates = build_candidates(enumerated, peptide_db, target, allowed_error, DSS)
        assert set(tuple(sorted((c.alpha_index, c.beta_index))) for c in candidates) == expected
