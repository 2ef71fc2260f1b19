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
Base context class providing tolerance and error management.

This module provides ContextBase, a minimal base class for contexts that need the precursor
and fragment tolerances of the config. The pair search extends this class.
"""


class ContextBase:
    """
    Base context providing tolerance and error management.

    Tolerances are stored as absolute (atol) and relative (rtol) parts; the allowed error for
    a value x is atol + rtol * x.
    """

    def __init__(self, config):
        """
        Initialize ContextBase with configuration.

        :param config: (Config) Configuration object with translated tolerances
        """
        self.config = config
        self.set_tolerances()

    def set_tolerances(self):
        """Store the tolerances of the config for fast access."""
        self._ms1_atol = self.config.ms1_atol
        self._ms1_rtol = self.config.ms1_rtol
        self._ms2_atol = self.config.ms2_atol
        self._ms2_rtol = self.config.ms2_rtol
        self._xlink_atol = self.config.xlink_atol
        self._xlink_rtol = self.config.xlink_rtol

    def get_ms1_atol(self):
        """Get the absolute precursor tolerance."""
        return self._ms1_atol

    def get_ms1_rtol(self):
        """Get the relative precursor tolerance."""
        return self._ms1_rtol

    def get_ms2_atol(self):
        """Get the absolute fragment tolerance."""
        return self._ms2_atol

    def get_ms2_rtol(self):
        """Get the relative fragment tolerance."""
        return self._ms2_rtol

    def get_xlink_atol(self):
        """Get the absolute tolerance for cross-link fragments."""
        return self._xlink_atol

    def get_xlink_rtol(self):
        """Get the relative tolerance for cross-link fragments."""
        return self._xlink_rtol

    def ms1_error(self, mass):
        """Allowed precursor error in Dalton at the given mass."""
        return self._ms1_atol + self._ms1_rtol * mass
