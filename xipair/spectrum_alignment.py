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

"""Alignment of the peaks of two spectra."""
import numpy as np


def align_spectra(mz1, mz2, atol, rtol, intensity_cutoff=0.0, int1=None, int2=None,
                  charges1=None, charges2=None):
    """
    Align the peaks of two m/z sorted spectra.

    For every peak of the first spectrum the closest peak of the second spectrum is selected
    among the peaks within atol + rtol * mz1 (boundary included) whose intensity ratio
    (smaller / larger) is at least intensity_cutoff and whose charge is compatible
    (one of the two is unknown (0) or both are equal). Among equally close peaks the one with
    the lower index wins.

    :param mz1: (ndarray float64) sorted m/z values of the first spectrum
    :param mz2: (ndarray float64) sorted m/z values of the second spectrum
    :param atol: (float) absolute tolerance
    :param rtol: (float) relative tolerance (ppm * 1e-6), applied to the first spectrum's m/z
    :param intensity_cutoff: (float) minimal intensity ratio, 0 disables the check
    :param int1: (ndarray float64) intensities of the first spectrum (needed for a cutoff > 0)
    :param int2: (ndarray float64) intensities of the second spectrum (needed for a cutoff > 0)
    :param charges1: (ndarray int) peak charges of the first spectrum, None for all unknown
    :param charges2: (ndarray int) peak charges of the second spectrum, None for all unknown
    :return: (ndarray intp, shape (n, 2)) aligned (index1, index2) pairs sorted by index1
    """
    mz1 = np.asarray(mz1, dtype=np.float64)
    mz2 = np.asarray(mz2, dtype=np.float64)
    alignment = []
    if len(mz1) == 0 or len(mz2) == 0:
        return np.empty((0, 2), np.intp)

    tolerance = atol + rtol * mz1
    lower = np.searchsorted(mz2, mz1 - tolerance, side='left')
    upper = np.searchsorted(mz2, mz1 + tolerance, side='right')
    check_intensity = intensity_cutoff > 0

    for i in np.nonzero(upper > lower)[0]:
        candidates = np.arange(lower[i], upper[i])
        distance = np.abs(mz2[candidates] - mz1[i])
        valid = distance <= tolerance[i]
        if check_intensity:
            high = np.maximum(int1[i], int2[candidates])
            low = np.minimum(int1[i], int2[candidates])
            with np.errstate(divide='ignore', invalid='ignore'):
                valid &= (high > 0) & (low / high >= intensity_cutoff)
        if charges1 is not None and charges2 is not None and charges1[i] != 0:
            valid &= (charges2[candidates] == 0) | (charges2[candidates] == charges1[i])
        if not valid.any():
            continue
        # argmin returns the first (lowest index) of equally close peaks
        best = np.argmin(np.where(valid, distance, np.inf))
        alignment.append((i, candidates[best]))

    if len(alignment) == 0:
        return np.empty((0, 2), np.intp)
    return np.array(alignment, dtype=np.intp)
