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
xipair: identification of cross-linked peptides from light/heavy MS2 spectrum pairs.

Spectra of precursors carrying an isotope labelled crosslinker are paired (light and heavy
label), split into common and cross-link ions and scored against cross-link candidates of
a digested protein database:
- Configuration system (config, const, dtypes)
- Spectra (spectra_reader, filters/, spectrum_alignment, preprocessing, feature_pairs)
- Peptides and candidates (peptide_db, modifications, mass, enumeration, candidates)
- Scoring (fragmentation, scoring, csm)
- Pipeline and I/O (search, output_format, cli, utils, xi_logging, context_base)
"""

__version__ = "1.0.0"

# Core modules
from . import config
from . import const
from . import dtypes
from . import modifications
from . import mass
from . import spectra_reader
from . import utils
from . import xi_logging
from . import context_base
from . import spectrum_alignment
from . import preprocessing
from . import feature_pairs
from . import peptide_db
from . import enumeration
from . import candidates
from . import fragmentation
from . import csm
from . import scoring
from . import search
from . import output_format

# Subpackages
from . import filters

__all__ = [
    "config",
    "const",
    "dtypes",
    "modifications",
    "mass",
    "spectra_reader",
    "utils",
    "xi_logging",
    "context_base",
    "spectrum_alignment",
    "preprocessing",
    "feature_pairs",
    "peptide_db",
    "enumeration",
    "candidates",
    "fragmentation",
    "csm",
    "scoring",
    "search",
    "output_format",
    "filters",
]
