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

"""Module providing constants and regular expressions."""
import re
import sys


class _const:
    VERSION = "1.0.0"

    PROTON_MASS = 1.007276466879
    C12C13_MASS_DIFF = 1.0033548
    H_MASS = 1.007825032241
    H2O_MASS = 18.0105647

    # Split a modX peptide sequence into modified amino acids, keeping terminal modifications
    # attached to the first and last residue.
    # example: "ac-PEoxMPTIDE-am"
    # matches: ['ac-P', 'E', 'oxM', 'P', 'T', 'I', 'D', 'E-am']
    MODIFIED_AA_PATTERN = re.compile(b"[^A-Z]*[A-Z](?:-[^A-Z]*$)?")

    # xQuest weights of the composite score
    XCORRX_WEIGHT = 2.488
    XCORRC_WEIGHT = 21.279
    MATCH_ODDS_WEIGHT = 1.973
    WTIC_WEIGHT = 12.829
    INTSUM_WEIGHT = 1.8

    # digest length limits xQuest uses to weight the TIC of the two chains
    MAX_DIGEST_LENGTH = 50
    MIN_DIGEST_LENGTH = 5

    # cross-correlation settings (shift range, bin widths in Th for xlink and common ions)
    XCORR_MAX_SHIFT = 5
    XCORR_XLINK_BIN = 0.3
    XCORR_COMMON_BIN = 0.2

    # minimal intensity ratio of two peaks to be aligned between the light and heavy spectrum
    PAIR_INTENSITY_CUTOFF = 0.3

    # as const is overwriten by _const the module __file__ variable would disapear.
    # so it is also saved into the class _const
    __file__ = __file__

    class ConstError(TypeError):
        pass

    # overwrite the __setattr__ method to raise an error if a variable is overwritten
    def __setattr__(self, name, value):
        if name in self.__dict__ or name in self.__class__.__dict__:
            raise self.ConstError("Can't rebind const(%s)" % name)
        self.__dict__[name] = value


sys.modules[__name__] = _const()
