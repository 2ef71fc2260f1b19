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

"""Module for formatting and writing the search results."""
import csv
import numpy as np
from xipair.candidates import LinkType


def create_mod_str(context, pep_indices):
    """
    Create a semicolon separated string of modifications.

    :param context: (PairSearch) Search context
    :param pep_indices: (list of int) Indices into the peptide DB
    :return: modifications strings
    :rtype: list of str
    """
    mod_names = [''] + [mod.name for mod in context.config.modification.modifications]

    mods = context.peptide_db.modifications[pep_indices].tolist()
    # change cterm position to end of list
    [m.append(m.pop(1)) for m in mods]
    return [';'.join([mod_names[i] for i in m if i != 0]) for m in mods]


def create_mod_pos_str(context, pep_indices):
    """
    Create a semicolon separated string of modification positions (1-based).

    :param context: (PairSearch) Search context
    :param pep_indices: (list of int) Indices into the peptide DB
    :return: modification positions strings
    :rtype: list of str
    """
    mod_arrs = context.peptide_db.modifications[pep_indices]
    return_strs = []
    for mods in mod_arrs:
        mod_strs = []
        if mods[0] != 0:
            mod_strs.append('nterm')
        # switch to 1-based
        mod_pos = np.where(mods[2:] != 0)[0] + 1
        mod_strs += mod_pos.astype(str).tolist()
        if mods[1] != 0:
            mod_strs.append('cterm')
        return_strs.append(';'.join(mod_strs))
    return return_strs


def create_annotation_str(annotations):
    """
    Create a semicolon separated string of the fragment annotations of a match.

    :param annotations: (ndarray, dtypes.fragment_annotations) annotations
    :return: (str) e.g. '212.1023:1:[alpha|ci$b2];345.2240:2:[beta|xi$y4]'
    """
    if annotations is None:
        return ''
    return ';'.join('%.4f:%d:%s' % (a['peak_mz'], a['charge'], a['annotation'])
                    for a in annotations)


HEADER = ['pair_index', 'scan_index_light', 'scan_index_heavy', 'rank', 'link_type',
          'precursor_mass', 'precursor_charge', 'candidate_mass', 'linker_mass',
          'alpha_sequence', 'alpha_link_pos', 'alpha_mods', 'alpha_mod_pos', 'alpha_proteins',
          'alpha_decoy', 'beta_sequence', 'beta_link_pos', 'beta_mods', 'beta_mod_pos',
          'beta_proteins', 'beta_decoy', 'score', 'pre_score', 'perc_tic', 'wtic', 'int_sum',
          'match_odds', 'xcorrx', 'xcorrc', 'matched_common_alpha', 'matched_common_beta',
          'matched_xlink_alpha', 'matched_xlink_beta', 'annotations']


def format_csm(context, csm):
    """
    Format a match as a row of the result table.

    Link positions are 1-based. For loop-links the second link position is reported in the
    beta_link_pos column while the beta peptide columns stay empty.

    :param context: (PairSearch) Search context
    :param csm: (CrossLinkSpectrumMatch) the match
    :return: (list) the row, in the order of HEADER
    """
    peptide_db = context.peptide_db
    candidate = csm.candidate
    alpha = candidate.alpha_index
    row = [csm.pair_index, csm.scan_index_light, csm.scan_index_heavy, csm.rank,
           candidate.link_type.value, csm.precursor_mass, csm.precursor_charge,
           candidate.precursor_mass, candidate.linker_mass,
           peptide_db.sequences[alpha].decode('ascii'), candidate.pos_alpha + 1,
           create_mod_str(context, [alpha])[0], create_mod_pos_str(context, [alpha])[0],
           ';'.join(peptide_db.proteins_of(alpha)), peptide_db.is_decoy(alpha)]

    if candidate.link_type == LinkType.CROSS:
        beta = candidate.beta_index
        row += [peptide_db.sequences[beta].decode('ascii'), candidate.pos_beta + 1,
                create_mod_str(context, [beta])[0], create_mod_pos_str(context, [beta])[0],
                ';'.join(peptide_db.proteins_of(beta)), peptide_db.is_decoy(beta)]
    elif candidate.link_type == LinkType.LOOP:
        row += ['', candidate.pos_beta + 1, '', '', '', '']
    else:
        row += ['', '', '', '', '', '']

    row += [csm.score, csm.pre_score, csm.perc_tic, csm.wtic, csm.int_sum, csm.match_odds,
            csm.xcorrx, csm.xcorrc, csm.matched_common_alpha, csm.matched_common_beta,
            csm.matched_xlink_alpha, csm.matched_xlink_beta,
            create_annotation_str(csm.annotations)]
    return row


def write_results(path, results, context, delimiter=','):
    """
    Write the matches of all spectrum pairs to a CSV/TSV file.

    :param path: (str) output file path
    :param results: (list of list of CrossLinkSpectrumMatch) ranked matches per pair
    :param context: (PairSearch) Search context holding the config and the peptide table
    :param delimiter: (str) column delimiter
    :return: (int) number of written rows
    """
    n_rows = 0
    with open(path, 'w', newline='') as f:
        writer = csv.writer(f, delimiter=delimiter)
        writer.writerow(HEADER)
        for csms in results:
            for csm in csms:
                writer.writerow(format_csm(context, csm))
                n_rows += 1
    return n_rows
