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

from xipair.spectrum_alignment import align_spectra
from numpy.testing import assert_array_equal
import numpy as np


def test_tolerance_boundary_is_inclusive():
    assert_array_equal(align_spectra([100.0], [100.25], 0.25, 0), [[0, 0]])
    assert len(align_spectra([100.0], [100.375], 0.25, 0)) == 0


def test_relative_tolerance():
    assert_array_equal(align_spectra([1000.0], [1000.009], 0, 10e-6), [[0, 0]])
    assert len(align_spectra([1000.0], [1000.011], 0, 10e-6)) == 0


def test_closest_peak_wins():
    alignment = align_spectra([100.0, 200.0], [99.9, 100.05, 199.0, 200.3], 0.5, 0)
    assert_array_equal(alignment, [[0, 1], [1, 3]])

    # equally close peaks resolve to the lower index
    assert_array_equal(align_spectra([100.0], [99.75, 100.25], 0.5, 0), [[0, 0]])


def test_intensity_cutoff():
    assert len(align_spectra([100.0], [100.0], 0.2, 0, 0.3, np.array([1.0]),
                             np.array([0.2]))) == 0
    assert_array_equal(align_spectra([100.0], [100.0], 0.2, 0, 0.3, np.array([1.0]),
                                     np.array([0.5])), [[0, 0]])
    # a rejected peak does not hide a valid one further away
    assert_array_equal(align_spectra([100.0], [100.0, 100.1], 0.2, 0, 0.3, np.array([1.0]),
                                     np.array([0.2, 0.8])), [[0, 1]])


def test_charge_compatibility():
    mz = [100.0]
    assert len(align_spectra(mz, mz, 0.2, 0, charges1=np.array([2]),
                             charges2=np.array([3]))) == 0
    assert_array_equal(align_spectra(mz, mz, 0.2, 0, charges1=np.array([2]),
                                     charges2=np.array([0])), [[0, 0]])
    assert_array_equal(align_spectra(mz, mz, 0.2, 0, charges1=np.array([0]),
                                     charges2=np.array([3])), [[0, 0]])
    assert_array_equal(align_spectra(mz, mz, 0.2, 0, charges1=np.array([2]),
                                     charges2=np.array([2])), [[0, 0]])


def test_empty_spectra():
    assert align_spectra([], [100.0], 0.2, 0).shape == (0, 2)
    assert align_spectra([100.0], [], 0.2, 0).shape == (0, 2)
    assert align_spectra([100.0], [300.0], 0.2, 0).shape == (0, 2)
