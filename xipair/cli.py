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

"""Command line interface of the light/heavy spectrum pair search."""
import argparse
from xipair import const
from xipair.config import Config, ConfigReader
from xipair.output_format import write_results
from xipair.search import PairSearch
from xipair.xi_logging import log, log_enable, log_file, progress_enable


def build_parser():
    parser = argparse.ArgumentParser(
        prog='xipair',
        description='Identify cross-linked peptides from pairs of MS2 spectra of light and '
                    'heavy isotope labelled crosslinkers.')
    parser.add_argument('--version', action='version', version='%(prog)s ' + const.VERSION)
    parser.add_argument('--config', '-c', default=None,
                        help='search configuration (YAML or JSON), defaults are used if not '
                             'given')
    parser.add_argument('--in', '-i', dest='peaklists', nargs='+', required=True,
                        help='peak list files (MGF, mzML), zip archives or directories')
    parser.add_argument('--consensus', required=True,
                        help='consensusXML file linking the light and heavy MS1 features')
    parser.add_argument('--database', '-d', required=True, help='protein FASTA file')
    parser.add_argument('--decoy-database', default=None,
                        help='FASTA file of decoy proteins')
    parser.add_argument('--out', '-o', required=True,
                        help='result file, tab separated if it ends with .tsv')
    parser.add_argument('--threads', '-t', type=int, default=None,
                        help='number of threads (0 all CPUs, -N all but N), overrides the '
                             'config')
    parser.add_argument('--log', default=None, help='write the log to this file')
    return parser


def main(argv=None):
    """Run a search from the command line."""
    args = build_parser().parse_args(argv)

    log_enable(True)
    progress_enable(True)
    if args.log is not None:
        log_file(args.log)

    if args.config is not None:
        config = ConfigReader.load_file(args.config)
    else:
        config = Config()
    if args.threads is not None:
        config.threads = args.threads

    search = PairSearch(config)
    search.load_spectra(args.peaklists)
    search.load_pairs(args.consensus)
    search.load_database(args.database, args.decoy_database)
    results = search.search()

    delimiter = '\t' if args.out.lower().endswith('.tsv') else ','
    n_rows = write_results(args.out, results, search, delimiter)
    log(f"Wrote {n_rows} matches to {args.out}")
    if args.log is not None:
        log_file(False)


if __name__ == '__main__':
    main()
