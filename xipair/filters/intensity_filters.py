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

"""Filters working on the peak intensities only."""
import numpy as np
from xipair.filters.base_filter import BaseFilter


class ThresholdFilter(BaseFilter):
    """Remove all peaks with an intensity not above a threshold (by default zero)."""

    config_needed = False

    def __init__(self, context=None, threshold=0.0):
        BaseFilter.__init__(self, context)
        self.threshold = threshold

    def process(self, spectrum):
        return spectrum.subset(spectrum.int_values > self.threshold)


class NormalizeFilter(BaseFilter):
    """Scale the intensities so that the most intense peak has an intensity of 1."""

    config_needed = False

    def process(self, spectrum):
        max_int = np.amax(spectrum.int_values, initial=0)
        if max_int <= 0:
            return spectrum.subset(slice(None))
        return spectrum.with_peaks(spectrum.mz_values, spectrum.int_values / max_int,
                                   spectrum.charge_values)


class NLargestFilter(BaseFilter):
    """
    Keep the n most intense peaks of a spectrum.

    The number of peaks is either given explicitly or taken from the config
    (max_peak_number). Ties on intensity are resolved in favour of the lower m/z.
    """

    def __init__(self, context=None, n=None):
        self.config_needed = n is None
        BaseFilter.__init__(self, context)
        self.n = self.config.max_peak_number if n is None else n

    def process(self, spectrum):
        if len(spectrum) <= self.n:
            return spectrum.subset(slice(None))
        selected = np.argsort(-spectrum.int_values, kind='stable')[:self.n]
        return spectrum.subset(np.sort(selected))
