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

from pyteomics import mgf, mzml
from xipair import const
import numpy as np
import re
import ntpath
import io
import os
import zipfile
from abc import ABC, abstractmethod
from .xi_logging import log


class Spectrum:
    def __init__(self, precursor, mz_array, int_array, scan_id, rt=np.nan, file_name='',
                 source_path='', run_name='', scan_number=-1, scan_index=-1, title='',
                 charge_array=None):
        """
        Initialise a Spectrum object.

        :param precursor: (dict) Spectrum precursor information as dict.  e.g. {'mz':
            102.234, 'charge': 2, 'intensity': 12654.35}
        :param mz_array: (ndarray, dtype: float64) m/z values of the spectrum peaks
        :param int_array: (ndarray, dtype: float64) intensity values of the spectrum peaks
        :param scan_id: (str) Unique scan identifier
        :param rt: (float) Retention time in seconds
        :param file_name: (str) Name of the peaklist file
        :param source_path: (str) Path to the peaklist source
        :param run_name: (str) Name of the MS run
        :param scan_number: (int) Scan number of the spectrum
        :param scan_index: (int) Index of the MS2 spectrum in the scan ordered peak list
        :param charge_array: (ndarray, dtype: int) charge states of the peaks (0 = unknown)
        """
        self.precursor = precursor
        self.scan_id = scan_id
        self.scan_number = scan_number
        self.scan_index = scan_index
        self.rt = rt
        self.file_name = file_name
        self.source_path = source_path
        self.run_name = run_name
        self.title = title
        mz_array = np.asarray(mz_array, dtype=np.float64)
        int_array = np.asarray(int_array, dtype=np.float64)
        if charge_array is None:
            charge_array = np.zeros(len(mz_array), np.int8)
        charge_array = np.asarray(charge_array, dtype=np.int8)
        # make sure that the m/z values are sorted asc (stable to keep the order of equal m/z)
        sorted_indices = np.argsort(mz_array, kind='stable')
        self.mz_values = mz_array[sorted_indices]
        self.int_values = int_array[sorted_indices]
        self.charge_values = charge_array[sorted_indices]
        self._precursor_mass = None

    def __len__(self):
        return len(self.mz_values)

    @property
    def precursor_charge(self):
        """Get the precursor charge state."""
        return self.precursor['charge']

    @precursor_charge.setter
    def precursor_charge(self, charge):
        self._precursor_mass = None
        self.precursor['charge'] = charge

    @property
    def precursor_mz(self):
        """Get the precursor m/z."""
        return self.precursor['mz']

    @precursor_mz.setter
    def precursor_mz(self, mz):
        self._precursor_mass = None
        self.precursor['mz'] = mz

    @property
    def precursor_int(self):
        """Get the precursor intensity."""
        return self.precursor['intensity']

    @property
    def precursor_mass(self):
        """Return the neutral mass of the precursor."""
        if self._precursor_mass is None:
            self._precursor_mass = (self.precursor['mz'] - const.PROTON_MASS) *\
                self.precursor['charge']
        return self._precursor_mass

    def with_peaks(self, mz_array, int_array, charge_array=None):
        """
        Create a copy of the spectrum with a different set of peaks.

        :param mz_array: (ndarray) m/z values
        :param int_array: (ndarray) intensity values
        :param charge_array: (ndarray) peak charges, defaults to unknown (0)
        :return: (Spectrum) new spectrum sharing the metadata of this one
        """
        return Spectrum(dict(self.precursor), mz_array, int_array, self.scan_id, self.rt,
                        self.file_name, self.source_path, self.run_name, self.scan_number,
                        self.scan_index, self.title, charge_array)

    def subset(self, indices):
        """
        Create a copy of the spectrum containing only the selected peaks.

        :param indices: (ndarray) peak indices or boolean mask
        :return: (Spectrum) new spectrum
        """
        return self.with_peaks(self.mz_values[indices], self.int_values[indices],
                               self.charge_values[indices])


class PeakListReader:
    """Loads the MS2 spectra of peak list files in scan order."""

    def __init__(self, context):
        """
        Initialise the PeakListReader.

        :param context: (ContextBase) context holding the config
        """
        self.readers = []
        self.context = context

    def load(self, peaklist_files, reset=True):
        """
        Create SpectraReaders from peaklist files.

        Supported file types: MGF and mzML (and zip archives or directories of these)
        :param peaklist_files: (str | list of str) path(s) to the peak list file(s) or archive(s)
        """
        if not isinstance(peaklist_files, list):
            peaklist_files = [peaklist_files]

        if reset:
            self.readers = []
        for peaklist_file in peaklist_files:
            count_readers = len(self.readers)
            if not os.path.exists(peaklist_file):
                raise ValueError(f"{peaklist_file} does not exist")
            if os.path.isdir(peaklist_file):
                # try to load any file in that directory
                for filename in sorted(os.listdir(peaklist_file)):
                    self.load(os.path.join(peaklist_file, filename), reset=False)
            elif zipfile.is_zipfile(peaklist_file):
                zip_f = zipfile.ZipFile(peaklist_file)
                for member in zip_f.infolist():
                    self._load(zip_f.open(member), member.filename,
                               peaklist_file + os.sep + member.filename)
            else:
                self._load(peaklist_file, peaklist_file)
            if reset and count_readers == len(self.readers):
                raise ValueError(f"{peaklist_file} could not be loaded")

    def _load(self, stream, filename, source_path=None):
        """Check the file type of the stream and load it."""
        filename = ntpath.basename(filename)
        if filename.lower().endswith('.mgf'):
            if not isinstance(stream, str):
                stream = io.TextIOWrapper(stream)
            self.readers.append(MGFReader(self.context))
        elif filename.lower().endswith('.mzml'):
            self.readers.append(MZMLReader(self.context))
        else:
            return
        self.readers[-1].load(stream, source_path=source_path, file_name=filename)

    @property
    def spectra(self):
        """Generator over the spectra of all readers."""
        for reader in self.readers:
            for spectrum in reader.spectra:
                yield spectrum

    def read_all(self):
        """
        Read all MS2 spectra and assign consecutive scan indices.

        :return: (list of Spectrum) scan ordered spectra, scan_index is the list position
        """
        spectra = list(self.spectra)
        for scan_index, spectrum in enumerate(spectra):
            spectrum.scan_index = scan_index
        log(f"Read {len(spectra)} MS2 spectra from {len(self.readers)} peak list(s)")
        return spectra


class SpectraReader(ABC):
    """Abstract Base Class for all SpectraReader."""

    def __init__(self, context):
        """
        Initialize the SpectraReader.

        :param context: (ContextBase) context holding the config
        """
        self.config = context.config
        self._reader = None
        self._re_scan_number = re.compile(self.config.re_scan_number)
        self._re_run_name = re.compile(self.config.re_run_name)
        self._source = None
        self.file_name = None
        self.source_path = None
        self.default_run_name = None

    @abstractmethod
    def load(self, source, file_name=None, source_path=None):
        """
        Load the spectrum file.

        :param source: Spectra file source
        :param file_name: (str) filename
        :param source_path: (str) path to the source file (peak list file or archive)
        """
        self._source = source
        if source_path is None:
            if isinstance(source, str):
                self.source_path = source
            else:
                self.source_path = getattr(source, 'name', '')
        else:
            self.source_path = source_path

        if file_name is None:
            self.file_name = ntpath.basename(self.source_path)
        else:
            self.file_name = file_name
        self.default_run_name = os.path.splitext(self.file_name)[0]

    @property
    @abstractmethod
    def spectra(self):
        """Create a Spectra generator."""
        while False:
            yield None

    def _scan_number(self, text):
        scan_number_match = re.search(self._re_scan_number, text)
        try:
            return int(scan_number_match.group(1))
        except (AttributeError, ValueError):
            return -1


class MGFReader(SpectraReader):
    """SpectraReader for MGF files."""

    def load(self, source, file_name=None, source_path=None):
        """
        Load MGF file.

        :param source: file source, path or stream
        :param file_name: (str) MGF filename
        :param source_path: (str) path to the source file (MGF or archive)
        """
        self._reader = mgf.read(source, use_index=False)
        super().load(source, file_name, source_path)

    def _convert_spectrum(self, scan_index, mgf_spec):
        params = mgf_spec['params']
        pepmass = params['pepmass']
        precursor = {
            'mz': pepmass[0],
            'charge': int(params['charge'][0]) if 'charge' in params else 0,
            'intensity': pepmass[1] if pepmass[1] is not None else np.nan
        }

        # use title as scan_id, default to filename_scan_index
        title = params.get('title', '')
        scan_id = title if title else '{}_{}'.format(self.file_name, scan_index)

        # parse retention time, default to NaN
        rt = float(params.get('rtinseconds', np.nan))

        # try to parse scan number and run_name from title
        run_name_match = re.search(self._re_run_name, title)
        try:
            run_name = run_name_match.group(1)
        except AttributeError:
            run_name = self.default_run_name

        # peaks without charge annotation are masked
        charges = mgf_spec.get('charge array')
        if charges is not None:
            charges = np.ma.filled(charges, 0)

        return Spectrum(precursor, mgf_spec['m/z array'], mgf_spec['intensity array'], scan_id,
                        rt, self.file_name, self.source_path, run_name, self._scan_number(title),
                        scan_index, title=title, charge_array=charges)

    @property
    def spectra(self):
        """Generator wrapped around pyteomics generator. Reformatting the spectrum information."""
        for scan_index, mgf_spec in enumerate(self._reader):
            yield self._convert_spectrum(scan_index, mgf_spec)


class MZMLReader(SpectraReader):
    """SpectraReader for mzML files."""

    def load(self, source, file_name=None, source_path=None):
        """
        Read in spectra from an mzML file.

        :param source: file source, path or stream
        :param file_name: (str) mzML filename
        :param source_path: (str) path to the source file (mzML or archive)
        """
        self._reader = mzml.read(source)
        super().load(source, file_name, source_path)

    def _convert_spectrum(self, scan_index, spec):
        # check for single scan per spectrum
        if spec['scanList']['count'] != 1:
            raise ValueError("Only a single scan per spectrum is supported.")
        scan = spec['scanList']['scan'][0]

        # check for single precursor per spectrum
        if spec['precursorList']['count'] != 1 or \
                spec['precursorList']['precursor'][0]['selectedIonList']['count'] != 1:
            raise ValueError("Only a single precursor per spectrum is supported.")
        p = spec['precursorList']['precursor'][0]['selectedIonList']['selectedIon'][0]

        precursor = {
            'mz': p['selected ion m/z'],
            'charge': int(p.get('charge state', 0)),
            'intensity': p.get('peak intensity', np.nan)
        }

        # id is required in mzML so set this as scan_id
        scan_id = spec['id']

        # retention time is given in minutes
        rt = scan.get('scan start time', np.nan) * 60

        charges = spec.get('charge array')
        if charges is not None:
            charges = np.rint(charges)

        return Spectrum(precursor, spec['m/z array'], spec['intensity array'], scan_id, rt,
                        self.file_name, self.source_path, self.default_run_name,
                        self._scan_number(scan_id), scan_index, charge_array=charges)

    @property
    def spectra(self):
        """Spectra generator wrapped around pyteomics generator (MS2 spectra only)."""
        scan_index = 0
        for spec in self._reader:
            # skip non-MS2
            if spec.get('ms level') != 2:
                continue
            yield self._convert_spectrum(scan_index, spec)
            scan_index += 1
