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

import numpy as np
from xipair.filters.base_filter import BaseFilter


class DenoiseFilter(BaseFilter):
    """
    Filter to denoise a spectrum.

    Picking the n highest intensity peaks per defined m/z bin (jumping window).
    """

    def __init__(self, context, denoise_setting='denoise'):
        """
        Initialise the DenoiseFilter.

        :param context: (ContextBase) context including the config
        :param denoise_setting: (str) key of the denoise setting to use from the config.
        """
        BaseFilter.__init__(self, context)
        self.denoise_config = getattr(self.config, denoise_setting)

    def process(self, spectrum):
        """
        Process a spectrum, returning a denoised version.

        Peak charges travel with their peaks.

        :param spectrum: (Spectrum) Spectrum to denoise
        :return: (Spectrum) Denoised copy of the spectrum
        """
        mz_values = spectrum.mz_values
        int_values = spectrum.int_values

        # window borders at multiples of the bin size
        bin_size = self.denoise_config.bin_size
        bins = np.arange(bin_size, np.amax(mz_values, initial=0), bin_size)
        bin_index_of_peaks = np.digitize(mz_values, bins)
        bin_selections = []
        for bin_index in np.unique(bin_index_of_peaks):
            peak_index_in_bin = np.nonzero(bin_index_of_peaks == bin_index)[0]
            intensities = int_values[peak_index_in_bin]
            # highest n intensities, among equal intensities the lower m/z wins
            selected_peaks = np.argsort(-intensities, kind='stable')[:self.denoise_config.top_n]
            bin_selections.append(peak_index_in_bin[selected_peaks])

        if len(bin_selections) == 0:
            return spectrum.subset(np.array([], np.intp))
        return spectrum.subset(np.sort(np.concatenate(bin_selections)))
