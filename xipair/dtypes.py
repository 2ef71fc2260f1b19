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

"""Central place for reused numpy data types."""
import numpy as np


xl_precursor = np.dtype([
    ('precursor_mass', np.float64),  # theoretical neutral mass of the candidate
    ('alpha_index', np.intp),        # index into the peptide db of the first peptide
    ('beta_index', np.intp)          # index of the second peptide, -1 for mono- and loop-links
])

theoretical_peaks = np.dtype([
    ('mz', np.float64),             # fragment m/z value
    ('charge', np.uint8),           # fragment charge state
    ('ion_type', '<S1'),            # ion type of the fragment, b'b' or b'y'
    ('idx', np.uint8),              # fragment number (residues counted from the terminus)
    ('isotope', np.uint8),          # isotope peak (0 = monoisotopic)
    ('pep_id', np.uint8),           # chain of the fragment (0 alpha, 1 beta)
    ('xlink', np.bool_)             # fragment contains the link site (carries the partner)
])

fragment_annotations = np.dtype([
    ('peak_mz', np.float64),        # matched peak m/z
    ('peak_int', np.float64),       # matched peak intensity
    ('charge', np.int8),            # fragment charge state
    ('annotation', '<U32')          # e.g. '[alpha|ci$b3]' (ci common ion, xi cross-link ion)
])
