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

from xipair.enumeration import enumerate_cross_links, filter_peptides_by_mass
from xipair.peptide_db import PeptideDatabase
from numpy.testing import assert_array_equal
import numpy as np

LINKER = 138.068


def peptide_table(masses, sites1=None, sites2=None):
    n = len(masses)
    sites1 = [[0]] * n if sites1 is None else sites1
    sites2 = sites1 if sites2 is None else sites2
    return PeptideDatabase([b'AAAAK'] * n, masses, sites1, sites2)


def naive_enumeration(peptide_db, linker_mass, mono_link_masses, precursors, atol, rtol):
    def hit(mass):
        return any(abs(p - mass) <= atol + rtol * mass for p in precursors)

    found = set()
    sites1, sites2 = peptide_db.sites
    for p1, m1 in enumerate(peptide_db.masses):
        for mono_mass in mono_link_masses:
            if (len(sites1[p1]) > 0 or len(sites2[p1]) > 0) and hit(m1 + mono_mass):
                found.add((p1, -1))
        if any(p != q for p in sites1[p1] for q in sites2[p1]) and hit(m1 + linker_mass):
            found.add((p1, -1))
        for p2 in range(p1, len(peptide_db.masses)):
            compatible = (len(sites1[p1]) > 0 and len(sites2[p2]) > 0) or \
                (len(sites2[p1]) > 0 and len(sites1[p2]) > 0)
            if compatible and hit(m1 + peptide_db.masses[p2] + linker_mass):
                found.add((p1, p2))
    return found


def test_cross_link_enumeration():
    peptide_db = peptide_table([1000.0, 1000.0005, 2000.0])
    enumerated = enumerate_cross_links(peptide_db, LINKER, [], np.array([2138.068]), 0.01, 0)

    pairs = set(zip(enumerated['alpha_index'].tolist(), enumerated['beta_index'].tolist()))
    assert (0, 1) in pairs
    assert pairs == {(0, 0), (0, 1), (1, 1)}
    # the single site of peptide 2 cannot form a loop-link
    assert 2 not in enumerated['alpha_index']
    assert 2 not in enumerated['beta_index']
    assert np.all(np.diff(enumerated['precursor_mass']) >= 0)


def test_loop_and_mono_links():
    peptide_db = peptide_table([1000.0, 1500.0], sites1=[[1], [1]], sites2=[[3], [1]])
    precursors = np.array([1000.0 + LINKER, 1500.0 + 156.0786])
    enumerated = enumerate_cross_links(peptide_db, LINKER, [156.0786], precursors, 0.01, 0)
    pairs = set(zip(enumerated['alpha_index'].tolist(), enumerated['beta_index'].tolist()))
    # 1000.0 loops, 1500.0 has a mono-link, 1500.0 cannot loop (sites 1 and 1)
    assert pairs == {(0, -1), (1, -1)}


def test_matches_naive_enumeration():
    rng = np.random.RandomState(0)
    masses = np.sort(rng.uniform(500, 2500, 60))
    sites1 = [[0] if rng.rand() > 0.2 else [] for _ in masses]
    sites2 = [[0, 2] if rng.rand() > 0.5 else [] for _ in masses]
    peptide_db = peptide_table(masses, sites1, sites2)
    precursors = np.sort(rng.uniform(1500, 4500, 40))
    mono_link_masses = [156.07864431, 155.094628715]

    enumerated = enumerate_cross_links(peptide_db, LINKER, mono_link_masses, precursors, 0.0,
                                       20e-6)
    found = set(zip(enumerated['alpha_index'].tolist(), enumerated['beta_index'].tolist()))
    assert found == naive_enumeration(peptide_db, LINKER, mono_link_masses, precursors, 0.0,
                                      20e-6)
    order = np.lexsort((enumerated['beta_index'], enumerated['alpha_index'],
                        enumerated['precursor_mass']))
    assert_array_equal(order, np.arange(len(enumerated)))


def test_empty_input():
    peptide_db = peptide_table([1000.0])
    assert len(enumerate_cross_links(peptide_db, LINKER, [], np.array([]), 0.01, 0)) == 0
    assert len(enumerate_cross_links(peptide_table([]), LINKER, [], np.array([2000.0]),
                                     0.01, 0)) == 0
    # nothing within the tolerance
    assert len(enumerate_cross_links(peptide_db, LINKER, [], np.array([5000.0]), 0.01, 0)) == 0


def test_filter_peptides_by_mass(context):
    peptide_db = peptide_table([1000.0, 1000.0005, 2000.0])
    assert len(filter_peptides_by_mass(peptide_db, 2138.068, LINKER, context)) == 3
    filtered = filter_peptides_by_mass(peptide_db, 1500.0, LINKER, context)
    assert len(filtered) == 2
    assert_array_equal(filtered.masses, [1000.0, 1000.0005])


def test_heterobifunctional_loop_and_mono_links():
    # the K reactive end sits after the D reactive end
    peptide_db = PeptideDatabase([b'ADAKAR', b'ADAAAR'], [1000.0, 1200.0], [[3], []],
                                 [[1], [1]])
    precursors = np.array([1100.0, 1200.0 + 50.0])
    enumerated = enumerate_cross_links(peptide_db, 100.0, [50.0], precursors, 0.01, 0)
    pairs = set(zip(enumerated['alpha_index'].tolist(), enumerated['beta_index'].tolist()))
    # peptide 1 only carries a site for the second end and still takes a mono-link
    assert pairs == {(0, -1), (1, -1)}
