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
Pairing of light and heavy MS2 spectra.

The isotope labelled crosslinker produces MS1 features in pairs (light and heavy label). A
feature finder links them into consensus features; MS2 spectra whose precursors belong to the
two features of a consensus feature form a spectrum pair.
"""
from collections import namedtuple
from lxml import etree
import numpy as np
from xipair.utils import tolerance_window
from xipair.xi_logging import log

FeatureHandle = namedtuple('FeatureHandle', ['map_index', 'mz', 'rt', 'charge'])


class ConsensusFeature:
    """A linked group of MS1 features (one per map)."""

    def __init__(self, feature_id, handles):
        """
        Initialise the ConsensusFeature.

        :param feature_id: (str) id of the consensus feature
        :param handles: (list of FeatureHandle) the linked features
        """
        self.feature_id = feature_id
        self.handles = handles


class ScanIndex(int):
    """Index of an MS2 spectrum in the scan ordered list of spectra."""

    def __new__(cls, value):
        value = int(value)
        if value < 0:
            raise ValueError("scan index must not be negative: %d" % value)
        return super().__new__(cls, value)


class SpectrumPair:
    """A pair of spectra of the same precursor with the light and the heavy crosslinker."""

    def __init__(self, light, heavy):
        self.light = ScanIndex(light)
        self.heavy = ScanIndex(heavy)

    def validate(self, n_spectra):
        """
        Check that both scan indices refer to different, existing spectra.

        :param n_spectra: (int) number of available spectra
        """
        if self.light >= n_spectra or self.heavy >= n_spectra:
            raise ValueError("spectrum pair (%d, %d) refers to a spectrum beyond the %d loaded "
                             "spectra" % (self.light, self.heavy, n_spectra))
        if self.light == self.heavy:
            raise ValueError("spectrum pair (%d, %d) pairs a spectrum with itself"
                             % (self.light, self.heavy))

    def __eq__(self, other):
        return isinstance(other, SpectrumPair) and \
            (self.light, self.heavy) == (other.light, other.heavy)

    def __hash__(self):
        return hash((self.light, self.heavy))

    def __repr__(self):
        return "SpectrumPair(%d, %d)" % (self.light, self.heavy)


def read_consensus_xml(path):
    """
    Read the consensus features of a consensusXML file.

    :param path: (str) path to the consensusXML file
    :return: (list of ConsensusFeature) features with their sub-element handles
    """
    features = []
    for _, elem in etree.iterparse(path, events=('end',)):
        if etree.QName(elem).localname != 'consensusElement':
            continue
        handles = []
        for sub_elem in elem.iter():
            if not isinstance(sub_elem.tag, str) or \
                    etree.QName(sub_elem).localname != 'element':
                continue
            handles.append(FeatureHandle(int(sub_elem.get('map')),
                                         float(sub_elem.get('mz')),
                                         float(sub_elem.get('rt')),
                                         int(sub_elem.get('charge', 0))))
        features.append(ConsensusFeature(elem.get('id', ''), handles))
        elem.clear()
    log(f"Read {len(features)} consensus features from {path}")
    return features


def link_feature_pairs(features, spectra, context):
    """
    Pair the MS2 spectra of linked light and heavy MS1 features.

    A spectrum is mapped to a feature handle if its precursor m/z is within the precursor
    tolerance, its retention time within `feature_mapping.rt_tolerance` and its charge equal to
    the handle charge. For consensus features with exactly two handles each spectrum mapped to
    map 0 (light) is paired with each spectrum mapped to map 1 (heavy).

    :param features: (list of ConsensusFeature) linked MS1 features
    :param spectra: (list of Spectrum) scan ordered MS2 spectra
    :param context: (ContextBase) context holding the config and tolerances
    :return: (list of SpectrumPair) unique pairs in feature order
    """
    rt_tolerance = context.config.feature_mapping.rt_tolerance
    precursor_mz = np.array([s.precursor_mz for s in spectra], np.float64)
    precursor_rt = np.array([s.rt for s in spectra], np.float64)
    precursor_charge = np.array([s.precursor_charge for s in spectra], np.int64)
    mz_order = np.argsort(precursor_mz, kind='stable')
    sorted_mz = precursor_mz[mz_order]

    def mapped_spectra(handle):
        low, high = tolerance_window(handle.mz, context.get_ms1_atol(), context.get_ms1_rtol())
        lower = np.searchsorted(sorted_mz, low, side='left')
        upper = np.searchsorted(sorted_mz, high, side='right')
        candidates = mz_order[lower:upper]
        mapped = candidates[
            (np.abs(precursor_rt[candidates] - handle.rt) <= rt_tolerance)
            & (precursor_charge[candidates] == handle.charge)]
        return np.sort(mapped)

    pairs = []
    seen = set()
    for feature in features:
        if len(feature.handles) != 2:
            continue
        light = [mapped_spectra(h) for h in feature.handles if h.map_index == 0]
        heavy = [mapped_spectra(h) for h in feature.handles if h.map_index == 1]
        if len(light) == 0 or len(heavy) == 0:
            continue
        for light_index in np.concatenate(light):
            for heavy_index in np.concatenate(heavy):
                pair = SpectrumPair(light_index, heavy_index)
                if pair.light == pair.heavy or pair in seen:
                    continue
                seen.add(pair)
                pairs.append(pair)

    log(f"Linked {len(pairs)} light/heavy spectrum pairs")
    return pairs


def observed_precursor_masses(pairs, spectra):
    """
    Neutral precursor masses of both spectra of all pairs.

    :param pairs: (list of SpectrumPair) spectrum pairs
    :param spectra: (list of Spectrum) scan ordered spectra
    :return: (ndarray float64) sorted masses (duplicates kept)
    """
    masses = []
    for pair in pairs:
        masses.append(spectra[pair.light].precursor_mass)
        masses.append(spectra[pair.heavy].precursor_mass)
    return np.sort(np.array(masses, np.float64))
