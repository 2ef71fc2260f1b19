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
The conftest.py file serves as a means of providing fixtures for an entire directory.
Fixtures defined in a conftest.py can be used by any test in that package without needing to
import them (pytest will automatically discover them).
"""

import numpy as np
import pytest
from xipair.candidates import CrossLinkCandidate, LinkType
from xipair.config import Config, Crosslinker, DenoiseConfig, DigestionConfig
from xipair.context_base import ContextBase
from xipair.fragmentation import theoretical_spectra
from xipair.mass import mass_to_mz, mod_deltas
from xipair.peptide_db import Protein, digest
from xipair.spectra_reader import Spectrum


@pytest.fixture()
def search_config():
    # Basic search config to use for tests
    return Config(
        digestion=DigestionConfig(missed_cleavages=1, min_peptide_length=3),
        ms1_tol='10 ppm',
        ms2_tol='0.2 Da',
        ms2_tol_xlinks='0.3 Da',
        denoise=DenoiseConfig(top_n=100, bin_size=100),
        threads=2,
    )


@pytest.fixture()
def k_only_config():
    # crosslinker reacting with lysine side chains only (no n-terminal sites)
    return Config(
        digestion=DigestionConfig(missed_cleavages=1, min_peptide_length=3),
        crosslinker=Crosslinker(name='DSSK', mass=138.0680796, iso_shift=12.075321,
                                mono_link_masses=[156.07864431], specificity=[['K']]),
        denoise=DenoiseConfig(top_n=100, bin_size=100),
        threads=2,
    )


@pytest.fixture()
def context(search_config):
    return ContextBase(search_config)


@pytest.fixture()
def k_only_context(k_only_config):
    return ContextBase(k_only_config)


@pytest.fixture()
def two_peptide_db(k_only_context):
    # AKLLR and GKVVR are the only peptides with an internal lysine
    proteins = [Protein('P1', 'AKLLRGKVVR', 'P1 test protein', False)]
    return digest(proteins, k_only_context)


@pytest.fixture()
def synthetic_pair(two_peptide_db, k_only_config):
    """
    Light and heavy spectrum of the AKLLR x GKVVR cross-link (charge 3).

    The light spectrum contains every theoretical peak, the heavy spectrum the common peaks
    and the cross-link peaks shifted by the isotope shift of their charge.
    """
    crosslinker = k_only_config.crosslinker
    precursor_mass = two_peptide_db.masses.sum() + crosslinker.mass
    candidate = CrossLinkCandidate(1, 0, 1, 1, LinkType.CROSS, crosslinker.mass,
                                   precursor_mass)
    theoretical = theoretical_spectra(candidate, two_peptide_db, mod_deltas(k_only_config),
                                      precursor_mass, 3)
    common_mz = theoretical.common['mz']
    xlinks = theoretical.xlinks

    light_mz = np.unique(np.concatenate([common_mz, xlinks['mz']]))
    heavy_mz = np.unique(np.concatenate(
        [common_mz, xlinks['mz'] + crosslinker.iso_shift / xlinks['charge']]))
    light = Spectrum({'mz': mass_to_mz(precursor_mass, 3), 'charge': 3, 'intensity': 1.0},
                     light_mz, np.ones(len(light_mz)), 'light', rt=100.0, scan_index=0)
    heavy = Spectrum({'mz': mass_to_mz(precursor_mass + crosslinker.iso_shift, 3), 'charge': 3,
                      'intensity': 1.0},
                     heavy_mz, np.ones(len(heavy_mz)), 'heavy', rt=101.0, scan_index=1)
    return light, heavy, candidate
