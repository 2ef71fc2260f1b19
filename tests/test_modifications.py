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

from xipair.config import Config, ModificationConfig, Modification
from xipair.context_base import ContextBase
from xipair.modifications import Modifier
from numpy.testing import assert_array_equal


def modifier_for(modifications, max_var_peptide_mods=2):
    config = Config(modification=ModificationConfig(
        modifications=modifications, max_var_peptide_mods=max_var_peptide_mods))
    return Modifier(ContextBase(config))


def test_no_mods():
    modifier = modifier_for([])
    assert modifier.modified_sequences('PEPTIDEK') == ['PEPTIDEK']


def test_var_and_fixed_mods():
    modifier = modifier_for([
        Modification(name='ox', specificity=['M'], composition='O1', type='variable'),
        Modification(name='cm', specificity=['C'], composition='C2H3N1O1', type='fixed'),
    ])
    assert modifier.fixed_mods == {'cm': ['C']}
    assert modifier.variable_mods == {'ox': ['M']}
    assert set(modifier.modified_sequences('MCK')) == {'McmCK', 'oxMcmCK'}


def test_max_var_mods():
    modifier = modifier_for([
        Modification(name='ox', specificity=['M'], composition='O1', type='variable'),
    ], max_var_peptide_mods=1)
    assert set(modifier.modified_sequences('MMK')) == {'MMK', 'oxMMK', 'MoxMK'}


def test_unspecific_mod_syntax():
    modifier = modifier_for([
        Modification(name='ac-', specificity=['X'], mass=42.010565, type='variable'),
    ])
    assert modifier.variable_mods == {'ac-': True}


def test_modification_array():
    modifier = modifier_for([
        Modification(name='ox', specificity=['M'], composition='O1', type='variable'),
        Modification(name='cm', specificity=['C'], composition='C2H3N1O1', type='fixed'),
        Modification(name='ac-', specificity=['X'], mass=42.010565, type='variable'),
        Modification(name='-am', specificity=['X'], mass=-0.984016, type='variable'),
    ])
    base, mods = modifier.modification_array(b'ac-oxMEcmCK-am', 8)
    assert base == b'MECK'
    assert_array_equal(mods, [3, 4, 1, 0, 2, 0, 0, 0])

    base, mods = modifier.modification_array(b'PEPTIDE', 9)
    assert base == b'PEPTIDE'
    assert_array_equal(mods, [0] * 9)


def test_stacked_modifications_are_rejected():
    modifier = modifier_for([
        Modification(name='ox', specificity=['M'], composition='O1', type='variable'),
        Modification(name='cm', specificity=['M'], composition='C2H3N1O1', type='variable'),
    ])
    assert modifier.modification_array(b'cmoxMK', 4) == (None, None)
