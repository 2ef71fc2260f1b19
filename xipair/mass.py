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

from pyteomics.cmass import calculate_mass, std_aa_comp
from xipair.const import PROTON_MASS
from xipair.utils import get_chunks
import numpy as np

# Generate lookup table mapping ASCII values to AA masses.
aa_masses = np.empty(256)
aa_masses[0] = 0  # assume strings are 0-terminated and padded.
aa_masses[1:] = np.nan  # make invalid AAs result in an invalid mass.

# calculate masses from compositions (std_aa_mass dict contains wrong entry for 'O'
for AA, comp in std_aa_comp.items():
    if AA not in ['-OH', 'H-']:
        aa_masses[ord(AA)] = calculate_mass(composition=comp)

# Precalculate terminal mass
nterm_mass = calculate_mass(formula='H')
cterm_mass = calculate_mass(formula='OH')
unmodified_termini_mass = nterm_mass + cterm_mass


def mod_deltas(config):
    """
    Mass deltas indexed like the modification arrays (0 is unmodified).

    :param config: (Config) search configuration
    :return: (ndarray float64) modification masses
    """
    return np.array([0] + [mod.mass for mod in config.modification.modifications], np.float64)


def mass(sequences, modifications=None, charges=None, config=None):
    """
    Calculate the neutral (or charged) masses of peptides.

    :param sequences: (ndarray, bytes, ndim=1)
        Unmodified peptide sequences.

    :param modifications: (ndarray, uint8, ndim=2), optional
        Modification locations. Shape should be N x (L + 2), where N is the number of
        sequences, and L is the maximum sequence length. In the second axis, index 0 is the
        n-terminus and 1 is the c-terminus. Indices 2 onwards are the amino acids of the
        sequence. Values should be zero to indicate no modification, or one plus an index
        into the config modification list, to indicate a modification at that location.

    :param charges: (ndarray, int, ndim=1), optional
        Charges to add protons for. Length should match the number of sequences.

    :param config: (Config)
        Search configuration, referred to for modification masses.
    """
    sequences = np.asarray(sequences, dtype=bytes)
    num_masses = len(sequences)
    masses = np.empty(num_masses, np.float64)
    if num_masses == 0:
        return masses

    # Cast byte strings to uint8 array
    sequence_chars = sequences.view(np.uint8).reshape(num_masses, -1)
    if modifications is not None:
        deltas = mod_deltas(config)

    # Process in chunks to minimise memory usage
    for chunk_start, chunk_length, chunk in get_chunks(num_masses, 1000):
        # Get sequence masses using lookup table
        masses[chunk] = aa_masses[sequence_chars[chunk]].sum(axis=1)

        # Add masses of unmodified termini
        masses[chunk] += unmodified_termini_mass

        if modifications is not None:
            masses[chunk] += deltas[modifications[chunk]].sum(axis=1)

        if charges is not None:
            # Add proton masses
            masses[chunk] += charges[chunk] * PROTON_MASS

    return masses


def residue_masses(sequence, modifications, deltas):
    """
    Per residue masses of a single peptide, terminal modifications included.

    The n-terminal modification is added to the first and the c-terminal modification to the
    last residue, so prefix sums over the result give b-ion masses without terminal groups.

    :param sequence: (bytes) unmodified peptide sequence
    :param modifications: (ndarray uint8) modification array of the peptide (L + 2)
    :param deltas: (ndarray float64) modification masses, see `mod_deltas`
    :return: (ndarray float64) residue masses
    """
    chars = np.frombuffer(sequence, dtype=np.uint8)
    length = len(chars)
    masses = aa_masses[chars] + deltas[modifications[2:2 + length]]
    masses[0] += deltas[modifications[0]]
    masses[-1] += deltas[modifications[1]]
    return masses


def mz_to_mass(mz, charge):
    """Neutral mass of an ion with the given m/z and charge."""
    return (mz - PROTON_MASS) * charge


def mass_to_mz(neutral_mass, charge):
    """m/z of an ion with the given neutral mass and charge."""
    return (neutral_mass + charge * PROTON_MASS) / charge
