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

"""Cross-link spectrum matches and their ranking."""


class CrossLinkSpectrumMatch:
    """A scored match of a cross-link candidate to a light/heavy spectrum pair."""

    def __init__(self, candidate, score, pre_score=0.0, perc_tic=0.0, wtic=0.0, int_sum=0.0,
                 match_odds=0.0, xcorrx=0.0, xcorrc=0.0, matched_common_alpha=0,
                 matched_common_beta=0, matched_xlink_alpha=0, matched_xlink_beta=0,
                 annotations=None, order=0):
        self.candidate = candidate
        self.score = score
        self.pre_score = pre_score
        self.perc_tic = perc_tic
        self.wtic = wtic
        self.int_sum = int_sum
        self.match_odds = match_odds
        self.xcorrx = xcorrx
        self.xcorrc = xcorrc
        self.matched_common_alpha = matched_common_alpha
        self.matched_common_beta = matched_common_beta
        self.matched_xlink_alpha = matched_xlink_alpha
        self.matched_xlink_beta = matched_xlink_beta
        self.annotations = annotations
        # position in the order the matches of a pair were built
        self.order = order
        self.rank = 0
        self.pair_index = -1
        self.scan_index_light = -1
        self.scan_index_heavy = -1
        self.precursor_mass = None
        self.precursor_charge = None

    def __repr__(self):
        return "CrossLinkSpectrumMatch(%r, score=%f, rank=%d)" % (self.candidate, self.score,
                                                                 self.rank)


def select_top_n(csms, n):
    """
    Select the n best scoring matches and rank them.

    The best remaining match is extracted until n matches are selected or none remain.
    Among equal scores the match built first wins.

    :param csms: (list of CrossLinkSpectrumMatch) matches of one spectrum pair
    :param n: (int) number of matches to keep
    :return: (list of CrossLinkSpectrumMatch) the selected matches with ranks 1..n,
        scores not increasing
    """
    remaining = list(csms)
    top = []
    while len(remaining) > 0 and len(top) < n:
        best = 0
        for i in range(1, len(remaining)):
            if remaining[i].score > remaining[best].score or \
                    (remaining[i].score == remaining[best].score
                     and remaining[i].order < remaining[best].order):
                best = i
        csm = remaining.pop(best)
        csm.rank = len(top) + 1
        top.append(csm)
    return top
