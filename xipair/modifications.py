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

"""Module for handling peptide modifications."""
from pyteomics import parser
import numpy as np
import re
from xipair import const


class Modifier:
    """Class that applies modifications on amino acid sequences."""

    # split a modified amino acid (see const.MODIFIED_AA_PATTERN) into
    # n-terminal mod, side chain mod, amino acid and c-terminal mod
    _re_modified_aa = re.compile(b'^([^A-Z]*-)?([^A-Z]*)([A-Z])(-[^A-Z]*)?$')

    def __init__(self, context):
        """Initialize the Modifier."""
        self.config = context.config.modification

        # set the index of the modification for the array form (0 is reserved for unmodified)
        for mod_idx, mod in enumerate(self.config.modifications):
            mod.index = mod_idx + 1
        self._mod_index = {m.name.encode('ascii'): m.index for m in self.config.modifications}

        self.fixed_mods = self._format_to_pyteomics_syntax(
            [m for m in self.config.modifications if m.type == 'fixed'])
        self.variable_mods = self._format_to_pyteomics_syntax(
            [m for m in self.config.modifications if m.type == 'variable'])

        # modX labels for all amino acids, unmodified termini and all defined modifications
        self.labels = parser.std_labels + [m.name for m in self.config.modifications]

    @classmethod
    def _format_to_pyteomics_syntax(cls, modifications):
        """
        Reformat list of modifications to pyteomics.parser dict syntax.

        Replace 'X' in specificity with (bool) True (as expected by pyteomics for unspecific mod).
        """
        return {m.name: (True if 'X' in m.specificity else m.specificity)
                for m in modifications}

    def modified_sequences(self, sequence):
        """
        Create all modified versions of a peptide sequence.

        Fixed modifications are applied to every matching residue, variable modifications
        generate one version per combination of at most `max_var_peptide_mods` modifications.

        :param sequence: (str) unmodified peptide sequence
        :return: (list of str) modX sequences (the unmodified one included if no fixed mod applies)
        """
        if len(self.fixed_mods) == 0 and len(self.variable_mods) == 0:
            return [sequence]
        return list(parser.isoforms(sequence, fixed_mods=self.fixed_mods,
                                    variable_mods=self.variable_mods,
                                    max_mods=self.config.max_var_peptide_mods,
                                    labels=self.labels))

    def modification_array(self, modx_sequence, width):
        """
        Split a modX sequence into the base sequence and the array form of its modifications.

        :param modx_sequence: (bytes) modX peptide sequence, e.g. b'ac-PEoxMK'
        :param width: (int) length of the returned modification array (>= peptide length + 2)
        :return: (bytes, ndarray uint8) base sequence and modification array with index 0 for
            the n-terminus, 1 for the c-terminus and 2 onwards for the residues.
            None, None if a residue carries a combination of modifications that is not defined.
        """
        modifications = np.zeros(width, np.uint8)
        residues = []
        for i, modified_aa in enumerate(const.MODIFIED_AA_PATTERN.findall(modx_sequence)):
            nterm, side_chain, aa, cterm = self._re_modified_aa.match(modified_aa).groups()
            try:
                if nterm:
                    modifications[0] = self._mod_index[nterm]
                if side_chain:
                    modifications[i + 2] = self._mod_index[side_chain]
                if cterm:
                    modifications[1] = self._mod_index[cterm]
            except KeyError:
                # stacked modifications on one residue
                return None, None
            residues.append(aa)
        return b''.join(residues), modifications
