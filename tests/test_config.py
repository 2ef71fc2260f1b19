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

from xipair.config import Config, Setting, ConfigGroup, ListSetting, Crosslinker, \
    ConfigReader, ModificationConfig, Modification, Enzyme, DigestionConfig
from numpy.testing import assert_almost_equal
import json
import pytest
import re
import os


def test_config_system():
    """ Test the configuration system """

    class SubConfig(ConfigGroup):
        v1 = Setting(int, 1)
        v2 = Setting(str, "hello")
        v3 = ListSetting(int, [1, "2"])

    class TestConfig(ConfigGroup):
        i1 = Setting(int, 1)
        i2 = Setting(int, '2')
        f1 = Setting(float, 3.0)
        s2 = Setting(str, 5)
        d1 = Setting(int, 1)
        l1 = ListSetting(int, [1, "2"])
        sub1 = Setting(SubConfig)
        sub2 = Setting(SubConfig, SubConfig(v1=2, v2="bye"))
        v_list = Setting(int, valid_values=[1, 2, 3], default=2)
        v_re = Setting(str, valid_values=re.compile('[A-z]+$'), required=False)
        v_required = Setting(str, required=True)
        i_max = Setting(int, 5, max_value=10)

    config = TestConfig(d1=4, sub1=SubConfig(), v_required='str')

    expected_results = dict(i1=1, i2=2, f1=3.0, s2="5", d1=4, l1=[1, 2], i_max=5)
    for setting, expected_value in expected_results.items():
        value = getattr(config, setting)
        assert type(value) is type(expected_value)
        assert value == expected_value

    assert config.sub1.v1 == 1
    assert config.sub2.v2 == "bye"
    assert config.sub2.v3 == [1, 2]

    # missing required attribute
    with pytest.raises(AttributeError):
        TestConfig(d1=4, sub1=SubConfig())

    with pytest.raises(AttributeError):
        config.nonexistent

    with pytest.raises(KeyError):
        TestConfig(nonexistent=1)

    with pytest.raises(TypeError):
        Setting(int, 'three')

    with pytest.raises(ValueError):
        TestConfig(v_list=4, sub1=SubConfig(), v_required='str')

    with pytest.raises(ValueError):
        TestConfig(v_re="Ab3", sub1=SubConfig(), v_required='str')

    with pytest.raises(ValueError):
        Setting(int, 11, max_value=10)

    # max_value not supported for str type
    with pytest.raises(TypeError):
        Setting(str, 1.0, max_value=5.5)


def test_default_config():
    config = Config()
    assert config.threads == 0
    assert config.crosslinker.name == 'DSS'
    assert_almost_equal(config.crosslinker.mass, 138.0680796)
    assert_almost_equal(config.crosslinker.iso_shift, 12.075321)
    assert config.crosslinker.mono_link_masses == [156.07864431, 155.094628715]
    assert config.digestion.enzyme.name == 'trypsin'
    assert config.digestion.missed_cleavages == 2
    assert config.digestion.min_peptide_length == 5
    assert config.modification.max_var_peptide_mods == 2
    assert config.precursor.min_charge == 3
    assert config.precursor.max_charge == 7
    assert config.number_top_hits == 5
    assert config.feature_mapping.rt_tolerance == 30.0


def test_tolerances():
    config = Config(ms1_tol='10 ppm', ms2_tol='0.2 Da', ms2_tol_xlinks='0.3 Da')
    assert config.ms1_atol == 0
    assert_almost_equal(config.ms1_rtol, 10e-6)
    assert_almost_equal(config.ms2_atol, 0.2)
    assert config.ms2_rtol == 0
    assert_almost_equal(config.xlink_atol, 0.3)

    # cross-link tolerance is raised to the fragment tolerance
    config = Config(ms2_tol='0.5 Da', ms2_tol_xlinks='0.3 Da')
    assert_almost_equal(config.xlink_atol, 0.5)

    config = Config(ms2_tol='15 ppm', ms2_tol_xlinks='20ppm')
    assert_almost_equal(config.ms2_rtol, 15e-6)
    assert_almost_equal(config.xlink_rtol, 20e-6)


def test_invalid_tolerances():
    with pytest.raises(ValueError):
        Config(ms1_tol='-5 ppm')

    with pytest.raises(ValueError):
        Config(ms2_tol='-0.1 Da')

    with pytest.raises(ValueError):
        Config(ms2_tol='abc')

    # different units of fragment and cross-link tolerance
    with pytest.raises(ValueError):
        Config(ms2_tol='15 ppm', ms2_tol_xlinks='0.3 Da')


def test_invalid_charge_range_and_top_hits():
    with pytest.raises(ValueError):
        Config(precursor={'min_charge': 5, 'max_charge': 4})

    with pytest.raises(ValueError):
        Config(number_top_hits=0)


def test_crosslinker_config():
    crosslinker = Crosslinker(name='test', mass=100, iso_shift=4.0,
                              specificity=[["K", "S", "nterm"]])
    assert crosslinker.homobifunctional
    assert crosslinker.nterm == [True, True]
    assert crosslinker.cterm == [False, False]
    assert crosslinker.residues == [{'K', 'S'}, {'K', 'S'}]
    assert crosslinker.mono_link_masses == []

    crosslinker = Crosslinker(name='hetero', mass=100, iso_shift=4.0,
                              specificity=[["K", "nterm"], ["D", "E", "cterm"]])
    assert not crosslinker.homobifunctional
    assert crosslinker.nterm == [True, False]
    assert crosslinker.cterm == [False, True]
    assert crosslinker.residues == [{'K'}, {'D', 'E'}]

    # terminal information survives the conversion to a dict
    assert crosslinker.to_dict()['specificity'] == [['K', 'nterm'], ['D', 'E', 'cterm']]

    with pytest.raises(ValueError):
        Crosslinker(name='bad', mass=100, iso_shift=4.0, specificity=[["k"]])

    with pytest.raises(ValueError):
        Crosslinker(name='bad', mass=100, iso_shift=4.0, specificity=[["K"], ["K"], ["K"]])


def test_crosslinker_presets():
    assert Crosslinker.BS3.name == 'BS3'
    assert_almost_equal(Crosslinker.BS3.iso_shift, 4.025108)

    config = Config(crosslinker='BS3')
    assert config.crosslinker.name == 'BS3'


def test_long_crosslinkername():
    with pytest.raises(ValueError):
        Crosslinker(name='a' * 40, mass=100, iso_shift=4.0, specificity=[["K"]])


def test_enzyme_rules():
    assert Enzyme.trypsin.rule == '(?<=K|R)(?!P)'
    assert Enzyme.asp_n.rule == '(?=D)'

    enzyme = Enzyme(name='custom', rule='(?<=M)')
    assert enzyme.rule == '(?<=M)'
    assert enzyme.to_dict() == {'name': 'custom', 'rule': '(?<=M)'}

    with pytest.raises(ValueError):
        Enzyme(name='none')

    with pytest.raises(ValueError):
        Enzyme(name='both', rule='(?<=M)', cterminal_of=['K'])


def test_modification_can_be_build_through_modification_config():
    values = [{
        'name': 'ox',
        'specificity': ['M'],
        'type': 'variable',
        'composition': 'O1'
    }]
    config = ModificationConfig(modifications=values)
    assert config.modifications[0].name == 'ox'
    assert_almost_equal(config.modifications[0].mass, 15.99491462)
    assert_almost_equal(config.mod_masses[b'ox'], 15.99491462)


def test_modification_terminal_flags():
    nterm_mod = Modification(name='ac-', specificity=['X'], type='variable', mass=42.010565)
    cterm_mod = Modification(name='-am', specificity=['X'], type='variable', mass=-0.984016)
    assert nterm_mod.nterm_mod and not nterm_mod.cterm_mod
    assert cterm_mod.cterm_mod and not cterm_mod.nterm_mod


def test_invalid_modifications():
    # neither mass nor composition
    with pytest.raises(AttributeError):
        Modification(name='ox', specificity=['M'], type='variable')

    with pytest.raises(ValueError):
        Modification(name='Ox', specificity=['M'], type='variable', mass=16.0)

    with pytest.raises(ValueError):
        Modification(name='ox', specificity=['M'], type='sometimes', mass=16.0)

    # duplicate names
    mod = {'name': 'ox', 'specificity': ['M'], 'type': 'variable', 'mass': 16.0}
    with pytest.raises(ValueError):
        ModificationConfig(modifications=[mod, dict(mod)])


def test_subconfig_decoupling():
    config1 = Config()
    config2 = Config()
    config1.digestion.missed_cleavages = 0
    assert config2.digestion.missed_cleavages == 2


class TestConfigReader:

    def test_loads_json_and_yaml(self):
        config = ConfigReader.loads_json('{"threads": 3, "ms2_tol": "0.1 Da"}')
        assert config.threads == 3
        assert_almost_equal(config.ms2_atol, 0.1)

        config = ConfigReader.loads_yaml('threads: 4\ndigestion:\n  missed_cleavages: 1\n')
        assert config.threads == 4
        assert config.digestion.missed_cleavages == 1

        # an empty document is the default config
        assert ConfigReader.loads_yaml('') == Config()

    def test_unknown_setting(self):
        with pytest.raises(KeyError):
            ConfigReader.loads_json('{"unknown_setting": 1}')

    def test_write_and_reload_json(self, tmpdir):
        config = Config(
            digestion=DigestionConfig(enzyme=Enzyme.asp_n, min_peptide_length=3),
            crosslinker=Crosslinker.BS3,
            modification={'modifications': [
                {'name': 'cm', 'specificity': ['C'], 'type': 'fixed',
                 'composition': 'C2H3N1O1'}]},
            ms1_tol='5ppm',
        )
        out_path = os.path.join(tmpdir, "test_config.json")
        config.write(out_path)

        with open(out_path) as f:
            config_dict = json.load(f)
        assert config_dict['ms1_tol'] == '5ppm'
        assert 'ms1_rtol' not in config_dict
        assert config_dict['crosslinker']['specificity'] == [['K', 'nterm']]
        assert config_dict['digestion']['enzyme']['nterminal_of'] == ['D']
        assert 'missed_cleavages' not in config_dict['digestion']

        config_reloaded = ConfigReader.load_file(out_path)
        assert config.to_dict() == config_reloaded.to_dict()
        assert config == config_reloaded

    def test_write_and_reload_yaml(self, tmpdir):
        config = Config(threads=2, number_top_hits=3)
        out_path = os.path.join(tmpdir, "test_config.yaml")
        config.write_yaml(out_path)

        config_reloaded = ConfigReader.load_file(out_path)
        assert config == config_reloaded
        assert config_reloaded.number_top_hits == 3
