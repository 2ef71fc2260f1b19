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

"""Configuration of a light/heavy cross-link pair search."""
import json
import yaml
import re
import copy
from memoized_property import memoized_property
from pyteomics import cmass

NO_DEFAULT = object()


class Setting:
    """A setting supported by the config system."""

    def __init__(self, type, default=NO_DEFAULT, valid_values=None, required=True, max_value=None):
        """
        Initialise the Setting.

        :param type: Python type expected for this setting.
        :param default: Default value for this setting.
        :param valid_values: Tuple of accepted values, re pattern, or None to accept any value.
        :param max_value: Maximum value of setting (for float or int types)
        """
        self.type = type
        self.valid_values = valid_values
        if max_value is not None and not any([issubclass(self.type, int),
                                              issubclass(self.type, float)]):
            raise TypeError("max_value is only supported for int and float type.")
        self.max_value = max_value
        if default is not NO_DEFAULT:
            try:
                self.default = self.accept(default)
            except TypeError:
                raise TypeError("Default '%s' is not valid and could not be coerced "
                                "into the expected type (%s)" % (repr(default),
                                                                 repr(self.type))) from None
            self.required = False
        else:
            self.required = required

    def accept(self, value):
        """
        Coerce a value and check that it is valid.

        :param value: (mixed) value to check
        :return: (mixed) the coerced value
        """
        coerced_value = self.coerce(value)
        if self.max_value is not None and coerced_value >= self.max_value:
            raise ValueError(f'{coerced_value} is above max_value({self.max_value})!')
        if self.valid_values is not None:
            if isinstance(self.valid_values, re.Pattern):
                if self.valid_values.match(coerced_value) is None:
                    raise ValueError(f'{coerced_value} is not valid!'
                                     f' Valid values need to match: {self.valid_values.pattern}')
            elif coerced_value not in self.valid_values:
                raise ValueError(f'{coerced_value} is not valid!'
                                 f' Valid values are: {self.valid_values}')
        return coerced_value

    def coerce(self, value):
        """
        Coerce a value into the correct type.

        Strings naming a preset defined on the type (e.g. 'DSS' for a Crosslinker) are
        resolved to that preset.

        :param value: (mixed) value to coerce
        :return: (mixed) coerced value
        """
        if isinstance(value, self.type):
            return value
        try:
            if isinstance(value, dict):
                return self.type(**value)
            elif isinstance(value, str) and isinstance(self.type.__dict__.get(value), self.type):
                return self.type.__dict__[value]
            else:
                return self.type(value)
        except ValueError:
            raise TypeError from None


class ListSetting(Setting):
    """A Setting with a list of values supported by the config system."""

    def accept(self, values):
        """
        Check that all elements of the ListSetting have valid values.

        :param values: (list) values to check
        :return: (list) coerced values
        """
        return_list = []

        if not isinstance(values, list):
            if isinstance(self.type, Setting):
                return_list.append(self.type.accept(values))
            else:
                return_list.append(super().accept(values))
        elif isinstance(self.type, ListSetting):
            # a list of lists - or a single inner list given without the outer one
            if any([isinstance(v, list) for v in values]):
                for value in values:
                    return_list.append(self.type.accept(value))
            else:
                return_list.append(self.type.accept(values))
        elif isinstance(self.type, Setting):
            for value in values:
                return_list.append(self.type.accept(value))
        else:
            for value in values:
                return_list.append(super().accept(value))

        return return_list


class ConfigMeta(type):
    """Metaclass used to define configuration groups."""

    def __new__(cls, name, bases, attributes):
        """Create a new instance."""
        settings = {k: a for k, a in attributes.items() if isinstance(a, Setting)}
        others = {k: a for k, a in attributes.items() if k not in settings}
        defaults = {k: s.default for k, s in settings.items() if hasattr(s, 'default')}
        required = set([k for k, s in settings.items() if s.required])
        new_attributes = dict(_settings=attributes, _defaults=defaults, _required=required,
                              **others)
        return type.__new__(cls, name, bases, new_attributes)


class ConfigGroup(metaclass=ConfigMeta):
    """Base class for configuration groups."""

    def __init__(self, **kwargs):
        """Initialise the ConfigGroup."""
        self._values = {}
        for key, value in kwargs.items():
            if key not in self._settings:
                raise KeyError("Unknown setting '%s'" % key)
            setattr(self, key, value)

        # transfer defaults to those values that are not set explicitly
        for k, v in self._defaults.items():
            if k not in kwargs.keys():
                setattr(self, k, copy.deepcopy(v))

        for setting in self._required:
            if setting not in kwargs.keys():
                raise AttributeError("'%s' is required but not defined" % setting) from None

    def __setattr__(self, key, value):
        """Set the value of a Setting."""
        if key.startswith('_') or key not in self._settings:
            super(ConfigGroup, self).__setattr__(key, value)
            return
        setting = self._settings[key]
        try:
            self._values[key] = setting.accept(value)
        except TypeError:
            raise TypeError("Value '%s' is not valid for '%s' and could not be coerced "
                            "into the expected type (%s)" % (repr(value), key,
                                                             repr(setting.type))) from None
        except ValueError:
            raise ValueError("Value '%s' is not valid for '%s'" % (repr(value), key)) from None

    def __contains__(self, key):
        """Check if a Setting is configured in the ConfigGroup."""
        return key in self._settings

    def __getattr__(self, key):
        """Get the value for a Setting."""
        if key.startswith('_') or key not in self._settings:
            raise AttributeError(key)
        elif key in self._values:
            return self._values[key]
        else:
            raise AttributeError(key)

    def __eq__(self, other):
        """Check if two ConfigGroups are equal."""
        if type(other) is type(self):
            return self.to_dict(excl_defaults=False) == other.to_dict(excl_defaults=False)
        return False

    @classmethod
    def from_json(cls, json_string):
        """Create a ConfigGroup from a JSON string."""
        return cls(**json.loads(json_string))

    @classmethod
    def from_yaml(cls, yaml_string):
        """Create a ConfigGroup from a YAML string."""
        return cls(**yaml.safe_load(yaml_string))

    @staticmethod
    def _list_elements_to_dict(values_lst, excl_defaults=True):
        """Convert a list of ConfigGroups/values to a list of dictionaries/values."""
        return_lst = []
        for element in values_lst:
            if isinstance(element, ConfigGroup):
                return_lst.append(element.to_dict(excl_defaults=excl_defaults))
            elif isinstance(element, list):
                return_lst.append(ConfigGroup._list_elements_to_dict(element, excl_defaults))
            else:
                return_lst.append(element)
        return return_lst

    def to_dict(self, excl_defaults=True):
        """
        Convert the ConfigGroup to a dictionary.

        :param excl_defaults: (bool) exclude default values
        :return: (dict) dictionary representation of the ConfigGroup
        """
        values = {}
        for k, value in self._values.items():
            if isinstance(value, ConfigGroup):
                value_tmp = value.to_dict(excl_defaults=excl_defaults)
            elif isinstance(value, list):
                value_tmp = ConfigGroup._list_elements_to_dict(value, excl_defaults=excl_defaults)
            else:
                value_tmp = value

            if value_tmp is None:
                continue
            default = self._defaults.get(k, NO_DEFAULT)
            if isinstance(default, ConfigGroup):
                default = default.to_dict(excl_defaults=excl_defaults)
            elif isinstance(default, list):
                default = ConfigGroup._list_elements_to_dict(default, excl_defaults=excl_defaults)
            if not excl_defaults or default != value_tmp:
                values[k] = value_tmp

        return values

    def to_json(self, excl_defaults=True):
        """Convert the ConfigGroup to a JSON string."""
        return json.dumps(self.to_dict(excl_defaults=excl_defaults))

    def write(self, file_name, excl_defaults=True):
        """Write the ConfigGroup to a JSON file."""
        with open(file_name, "w") as outfile:
            json.dump(self.to_dict(excl_defaults=excl_defaults), outfile, indent='\t')

    def write_yaml(self, file_name, excl_defaults=True):
        """Write the ConfigGroup to a YAML file."""
        with open(file_name, "w") as outfile:
            yaml.dump(self.to_dict(excl_defaults=excl_defaults), outfile)


class ToleranceContainer():
    """Mixin class for ConfigGroups that contain tolerances."""

    _re_ms_tol = re.compile(r'^[\-\+]?[0-9]+(?:\.[0-9]+)?\s*(?:ppm|th|da)$', re.IGNORECASE)

    @staticmethod
    def parse_ms_tol(str_tol):
        """Parse a tolerance string into a float value and unit string."""
        re_ms_tol = re.compile(r"(-?[0-9.]+)\s*(da|th|ppm)", re.IGNORECASE)
        tol, unit = re_ms_tol.search(str_tol).groups()
        return float(tol), unit.lower()

    @classmethod
    def translate_ms_tol(cls, str_tol):
        """Translate a tolerance string into numeric atol/rtol values."""
        atol, rtol = 0, 0
        tol, unit = cls.parse_ms_tol(str_tol)

        if unit == 'da' or unit == 'th':
            atol = tol
        elif unit == 'ppm':
            rtol = tol * 1e-6
        else:
            raise ValueError('MS tolerance must be given in ppm, da, or th.')

        return atol, rtol

    def initialise_tolerances(self):
        """Initialise the precursor, fragment and cross-link fragment tolerances."""
        self.ms1_atol, self.ms1_rtol = self.translate_ms_tol(self.ms1_tol)
        self.ms2_atol, self.ms2_rtol = self.translate_ms_tol(self.ms2_tol)
        self.xlink_atol, self.xlink_rtol = self.translate_ms_tol(self.ms2_tol_xlinks)

        if self.ms1_atol < 0 or self.ms1_rtol < 0:
            raise ValueError("MS1 error must be set to a positive value!")
        if self.ms2_rtol < 0 or self.ms2_atol < 0 or self.xlink_atol < 0 or self.xlink_rtol < 0:
            raise ValueError("MS2 error must be set to a positive value!")

        ms2_ppm = self.parse_ms_tol(self.ms2_tol)[1] == 'ppm'
        xlink_ppm = self.parse_ms_tol(self.ms2_tol_xlinks)[1] == 'ppm'
        if ms2_ppm != xlink_ppm:
            raise ValueError("ms2_tol and ms2_tol_xlinks must be given in the same unit!")

        # cross-link ions are never matched with a tighter tolerance than common ions
        self.xlink_atol = max(self.xlink_atol, self.ms2_atol)
        self.xlink_rtol = max(self.xlink_rtol, self.ms2_rtol)


class Crosslinker(ConfigGroup):
    """
    Isotope labelled crosslinker configuration.

    The specificity is given per crosslinker end. A single list defines a homobifunctional
    crosslinker (both ends react with the same residues). Besides amino acids in one letter
    code, 'nterm' and 'cterm' mark reactivity with the peptide termini.
    """

    """Name"""
    name = Setting(str, valid_values=re.compile('^.{1,39}$'))

    """Mass of the light crosslinker in Dalton"""
    mass = Setting(float)

    """Mass difference between the heavy and the light crosslinker"""
    iso_shift = Setting(float)

    """Masses of the crosslinker when attached to one residue only (hydrolysed/amidated end)"""
    mono_link_masses = ListSetting(float, [])

    """Specificity of crosslinker reactivity as list of specificities for each crosslinker end"""
    specificity = ListSetting(ListSetting(str))

    def __init__(self, **kwargs):
        """
        Initialise the Crosslinker.

        Forwards all kwargs to super().__init__ but preprocesses the specificity to parse out the
        termini information for both ends.
        """
        super().__init__(**kwargs)

        if len(self.specificity) not in [1, 2]:
            message = "only crosslinker with one or two sets of specificities are supported"
            raise ValueError(message)

        self.nterm = []
        self.cterm = []
        for sp in self.specificity:
            self.nterm.append('nterm' in sp)
            self.cterm.append('cterm' in sp)
            while 'nterm' in sp:
                sp.remove('nterm')
            while 'cterm' in sp:
                sp.remove('cterm')
            if any([len(aa) != 1 or not aa.isupper() for aa in sp]):
                raise ValueError("crosslinker specificity must be given as one letter amino "
                                 "acid codes or 'nterm'/'cterm'")

        self.homobifunctional = len(self.specificity) == 1
        # always expose both ends
        if self.homobifunctional:
            self.nterm.append(self.nterm[0])
            self.cterm.append(self.cterm[0])
        self.residues = [set(self.specificity[0]), set(self.specificity[-1])]

    def to_dict(self, excl_defaults=True):
        values = super().to_dict(excl_defaults=False)

        # restore the nterm and cterm information
        specificity = [list(sp) for sp in self.specificity]
        for i, sp in enumerate(specificity):
            if self.nterm[i]:
                sp.append("nterm")
            if self.cterm[i]:
                sp.append("cterm")
        values['specificity'] = specificity
        return values


Crosslinker.DSS = Crosslinker(name='DSS',
                              mass=138.0680796,
                              iso_shift=12.075321,
                              mono_link_masses=[156.07864431, 155.094628715],
                              specificity=[["K", "nterm"]])

Crosslinker.BS3 = Crosslinker(name='BS3',
                              mass=138.0680796,
                              iso_shift=4.025108,
                              mono_link_masses=[156.07864431, 155.094628715],
                              specificity=[["K", "nterm"]])


class Enzyme(ConfigGroup):
    """Enzyme configuration."""

    """Name of the enzyme"""
    name = Setting(str)

    """regular expression rule for cleavage (cleaves at the end of each match)"""
    rule = Setting(str, required=False)

    """enzyme cleaves n-terminal of these amino-acids"""
    nterminal_of = ListSetting(str, [])

    """enzyme cleaves c-terminal of these amino-acids"""
    cterminal_of = ListSetting(str, [])

    """enzyme does not cleave if the opposing amino-acid is one of these"""
    restraining = ListSetting(str, [])

    def __init__(self, **kwargs):
        """Turn cterminal_of and nterminal_of into a regex rule."""
        super().__init__(**kwargs)
        if 'rule' in self._values:
            if len(self.nterminal_of) > 0 or len(self.cterminal_of) > 0:
                raise ValueError("Can't handle definition of a rule and separate definitions of "
                                 "digested amino-acids")
            return

        if len(self.nterminal_of) == 0 and len(self.cterminal_of) == 0:
            raise ValueError("Enzyme needs either a rule or the digested amino-acids")

        rules = []
        if len(self.cterminal_of) > 0:
            # zero width match behind the digested amino-acid
            cterm_rule = '(?<=' + '|'.join(self.cterminal_of) + ')'
            if len(self.restraining) > 0:
                cterm_rule += '(?!' + '|'.join(self.restraining) + ')'
            rules.append(cterm_rule)

        if len(self.nterminal_of) > 0:
            # zero width match in front of the digested amino-acid
            nterm_rule = '(?=' + '|'.join(self.nterminal_of) + ')'
            if len(self.restraining) > 0:
                nterm_rule = '(?<!' + '|'.join(self.restraining) + ')' + nterm_rule
            rules.append(nterm_rule)

        self._values['rule'] = '|'.join(rules)

    def to_dict(self, excl_defaults=True):
        if len(self.nterminal_of) > 0 or len(self.cterminal_of) > 0:
            keys = ['name', 'nterminal_of', 'cterminal_of', 'restraining']
        else:
            keys = ['name', 'rule']
        return {key: self._values[key] for key in keys}


Enzyme.trypsin = Enzyme(name='trypsin', cterminal_of=['K', 'R'], restraining=['P'])

Enzyme.lys_c = Enzyme(name='lys-c', cterminal_of=['K'], restraining=['P'])

Enzyme.asp_n = Enzyme(name='asp-n', nterminal_of=["D"])


class DigestionConfig(ConfigGroup):
    """Digestion configuration."""

    """Digestion enzyme in use"""
    enzyme = Setting(Enzyme, Enzyme.trypsin)

    """Number of missed cleavages permitted"""
    missed_cleavages = Setting(int, 2)

    """Minimum peptide length filter (also the minimal number of paired peaks of a spectrum)"""
    min_peptide_length = Setting(int, 5)

    """Maximum peptide length filter."""
    max_peptide_length = Setting(int, 100)


class Modification(ConfigGroup):
    """Modification configuration."""

    def __init__(self, **kwargs):
        """Initialise the Modification."""
        if 'mass' not in kwargs and 'composition' in kwargs:
            kwargs['mass'] = cmass.calculate_mass(formula=kwargs['composition'])
        super().__init__(**kwargs)
        if 'mass' not in self._values:
            raise AttributeError("Either mass or composition has to be defined for modification "
                                 "'%s'" % self.name)

        self.nterm_mod = self.name.endswith('-')
        self.cterm_mod = self.name.startswith('-')

    """
    Name of the modification, modX syntax:
        xx for side chain modification
        xx- for n-terminal modification
        -xx for c-terminal modification
    """
    name = Setting(str, valid_values=re.compile('^(?:[a-z0-9]+-?|-[a-z0-9]+)$'))

    """amino acids that can be modified in one letter code ("X" for any amino acid)"""
    specificity = ListSetting(str)

    """chemical composition of the modification as a string, e.g. C2H3O1N1"""
    composition = Setting(str, required=False)

    """
    type of modification:
        - variable: both modified and unmodified versions exist
        - fixed: modification that is applied to every suitable amino acid
    """
    type = Setting(str, valid_values=('variable', 'fixed'))

    """mass in dalton"""
    mass = Setting(float, required=False)


class ModificationConfig(ConfigGroup):
    """Modification related configs."""

    modifications = ListSetting(Modification, [])

    """maximum number of variable modifications per peptide"""
    max_var_peptide_mods = Setting(int, 2)

    def __init__(self, **kwargs):
        """Initialise the ModificationConfig and reject duplicate modification names."""
        super().__init__(**kwargs)
        names = [m.name for m in self.modifications]
        if len(set(names)) != len(names):
            duplicates = sorted(set(n for n in names if names.count(n) > 1))
            raise ValueError("duplicate modification provided: %s" % ', '.join(duplicates))

    @memoized_property
    def mod_masses(self):
        """
        Mass deltas of the modifications.

        :return: (dict) modX name (bytes) -> mass delta
        """
        return {m.name.encode('ascii'): m.mass for m in self.modifications}


class PrecursorConfig(ConfigGroup):
    """Precursor filter configuration."""

    """Minimum precursor charge to be considered"""
    min_charge = Setting(int, 3)

    """Maximum precursor charge to be considered"""
    max_charge = Setting(int, 7)


class DenoiseConfig(ConfigGroup):
    """Denoise Filter configuration."""

    """ Top N (intensity) peaks to return when denoising, per given interval """
    top_n = Setting(int)

    """ Interval in m/z to use when denoising for which to return the top N peaks """
    bin_size = Setting(int)


class FeatureMappingConfig(ConfigGroup):
    """Settings for mapping MS2 spectra to the linked MS1 features."""

    """Retention time tolerance in seconds"""
    rt_tolerance = Setting(float, 30.0)


class FastaReaderConfig(ConfigGroup):
    """FastaReader configuration."""

    """Regular expression used for matching protein accession"""
    re_accession = Setting(str, "(?:sp|tr)\\|([\\w-]+)\\|.*")


class DecoyConfig(ConfigGroup):
    """Decoy annotation configuration."""

    """String marking decoy proteins in the accession"""
    decoy_string = Setting(str, 'decoy')

    """True if the decoy string is a prefix of the accession, otherwise it is a suffix"""
    prefix = Setting(bool, False)


class Config(ConfigGroup, ToleranceContainer):
    """Top level configuration for a search."""

    def __init__(self, **kwargs):
        """
        Initialise the Config.

        Forwards all kwargs to super().__init__ and translates the tolerances.
        Also does some validity checks.
        """
        super().__init__(**kwargs)

        # translate the tolerances from string to numeric atol/rtol
        self.initialise_tolerances()

        if self.precursor.min_charge > self.precursor.max_charge:
            raise ValueError("precursor min_charge must not be larger than max_charge!")
        if self.number_top_hits < 1:
            raise ValueError("number_top_hits must be at least 1!")

    """
    Max number of threads to use for processing spectrum pairs. Setting to 0 means using the
    number of CPUs. Setting it to a negative number N means use all but N threads.
    """
    threads = Setting(int, 0)

    """Tolerance for matching precursor (MS1) masses."""
    ms1_tol = Setting(str, '10 ppm', valid_values=ToleranceContainer._re_ms_tol)

    """Tolerance for matching fragment (MS2) m/z values."""
    ms2_tol = Setting(str, '0.2 Da', valid_values=ToleranceContainer._re_ms_tol)

    """Tolerance for matching cross-link fragment m/z values (raised to at least ms2_tol)."""
    ms2_tol_xlinks = Setting(str, '0.3 Da', valid_values=ToleranceContainer._re_ms_tol)

    """Crosslinker in use"""
    crosslinker = Setting(Crosslinker, Crosslinker.DSS)

    """Digestion config"""
    digestion = Setting(DigestionConfig, DigestionConfig())

    """Modification configs"""
    modification = Setting(ModificationConfig, ModificationConfig())

    """Precursor charge filter"""
    precursor = Setting(PrecursorConfig, PrecursorConfig())

    """Denoise settings applied to every spectrum before pairing"""
    denoise = Setting(DenoiseConfig, DenoiseConfig(top_n=20, bin_size=100))

    """Maximal number of peaks per spectrum and per common/cross-link peak set"""
    max_peak_number = Setting(int, 250)

    """Number of top hits reported for each spectrum pair"""
    number_top_hits = Setting(int, 5)

    """Mapping of MS2 spectra to linked features"""
    feature_mapping = Setting(FeatureMappingConfig, FeatureMappingConfig())

    """Fasta reader config"""
    fasta = Setting(FastaReaderConfig, FastaReaderConfig())

    """Decoy annotation"""
    decoy = Setting(DecoyConfig, DecoyConfig())

    """Regular expression used for matching the scan number"""
    re_scan_number = Setting(str, "(?:scan=|[^.]*\\.)([0-9]+)(?:\\.\1)?")

    """Regular expression used for matching the run name"""
    re_run_name = Setting(str, "^([^\\s.]+)")


class ConfigReader:
    """Config Reader class."""

    @classmethod
    def load_file(cls, file_name):
        """Open a file by filename and create a Config from it."""
        with open(file_name) as f:
            if file_name.lower().endswith('.json'):
                return cls.load_json(f)
            else:
                # YAML is a superset of JSON
                return cls.load_yaml(f)

    @classmethod
    def load_json(cls, file_obj):
        """Create a Config from a JSON file."""
        return Config(**json.load(file_obj))

    @classmethod
    def load_yaml(cls, file_obj):
        """Create a Config from a YAML file."""
        return Config(**(yaml.safe_load(file_obj) or {}))

    @classmethod
    def loads_json(cls, s):
        """Create a Config from a JSON string."""
        return Config(**json.loads(s))

    @classmethod
    def loads_yaml(cls, s):
        """Create a Config from a YAML string."""
        return Config(**(yaml.safe_load(s) or {}))
