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

"""xQuest style scores of cross-link spectrum matches."""
import math
import numpy as np
from scipy.stats import binom
from xipair import const, dtypes, mass
from xipair.candidates import LinkType
from xipair.csm import CrossLinkSpectrumMatch
from xipair.fragmentation import theoretical_spectra
from xipair.spectrum_alignment import align_spectra


def pre_score(matched_alpha, theoretical_alpha, matched_beta=None, theoretical_beta=None):
    """
    Fraction of matched theoretical peaks.

    For cross-links (beta counts given) the geometric mean of the fractions of both chains.
    """
    if matched_beta is None:
        if theoretical_alpha == 0:
            return 0.0
        return matched_alpha / theoretical_alpha
    if theoretical_alpha == 0 or theoretical_beta == 0:
        return 0.0
    return math.sqrt((matched_alpha / theoretical_alpha) * (matched_beta / theoretical_beta))


def match_odds_score(theoretical_mz, n_matched, atol, rtol, is_xlink_spectrum=False,
                     n_charges=1):
    """
    Probability based score for the number of matched peaks.

    The probability of a random match per peak is derived from the fragment tolerance
    relative to the m/z range of the theoretical spectrum. The score is the negative log of
    the probability to match more peaks by chance (binomial distribution).

    :param theoretical_mz: (ndarray float64) sorted theoretical m/z values
    :param n_matched: (int) number of matched theoretical peaks
    :param atol: (float) absolute fragment tolerance
    :param rtol: (float) relative fragment tolerance, converted at the mean theoretical m/z
    :param is_xlink_spectrum: (bool) the spectrum contains cross-link ions
    :param n_charges: (int) number of charge states of the cross-link ions
    :return: (float) the match odds (>= 0)
    """
    n_theoretical = len(theoretical_mz)
    if n_matched == 0 or n_theoretical == 0:
        return 0.0

    mz_range = theoretical_mz[-1] - theoretical_mz[0]
    tolerance = atol + rtol * np.mean(theoretical_mz)
    if mz_range <= 0:
        a_priori_p = 1.0
    else:
        base = max(0.0, 1 - (2 * tolerance) / (0.5 * mz_range))
        exponent = n_theoretical / n_charges if is_xlink_spectrum else n_theoretical
        a_priori_p = 1 - base ** exponent

    match_odds = -math.log(1 - binom.cdf(n_matched, n_theoretical, a_priori_p)
                           + np.finfo(float).tiny)
    return max(0.0, match_odds)


def _matched_intensity(matches, peaks):
    """Summed intensity of the unique experimental peaks in the alignments."""
    indices = np.concatenate([m[:, 1] for m in matches]) if len(matches) > 0 \
        else np.empty(0, np.intp)
    return peaks.int_values[np.unique(indices)].sum()


def total_matched_current(matches_common, matches_xlink, common_peaks, xlink_peaks):
    """
    Intensity of all matched experimental peaks.

    :param matches_common: (list of ndarray) alignments to the common peaks
    :param matches_xlink: (list of ndarray) alignments to the cross-link peaks
    :param common_peaks: (Spectrum) common peaks
    :param xlink_peaks: (Spectrum) cross-link peaks
    :return: (float) summed intensity, every peak counted once per peak set
    """
    return _matched_intensity(matches_common, common_peaks) + \
        _matched_intensity(matches_xlink, xlink_peaks)


def weighted_tic_score(alpha_size, beta_size, intsum_alpha, intsum_beta, total_current,
                       type_is_cross_link):
    """
    Matched intensity of both chains weighted by their length.

    Shorter chains explain less of the spectrum, so their fraction of the total current is
    weighted up. Mono- and loop-links are weighted as if paired with a chain making up the
    maximal digest length.
    """
    if not type_is_cross_link:
        beta_size = (const.MAX_DIGEST_LENGTH + const.MIN_DIGEST_LENGTH) - alpha_size
    if total_current <= 0:
        return 0.0
    aa_total = alpha_size + beta_size
    inv_max = 1 / (const.MIN_DIGEST_LENGTH / (const.MIN_DIGEST_LENGTH + const.MAX_DIGEST_LENGTH))
    weight_alpha = (aa_total / alpha_size) / inv_max
    weight_beta = (aa_total / beta_size) / inv_max if beta_size > 0 else 0.0
    return weight_alpha * (intsum_alpha / total_current) + \
        weight_beta * (intsum_beta / total_current)


def x_correlation(mz1, mz2, max_shift, tolerance):
    """
    Binned cross-correlation of two spectra.

    Both spectra are binned with the given bin width (10 for bins with a peak), centred on
    their mean and correlated for shifts of -max_shift to +max_shift bins.

    :param mz1: (ndarray float64) m/z values of the first spectrum
    :param mz2: (ndarray float64) m/z values of the second spectrum
    :param max_shift: (int) largest shift in bins
    :param tolerance: (float) bin width in Th
    :return: (ndarray float64) correlation per shift (2 * max_shift + 1 values)
    """
    results = np.zeros(2 * max_shift + 1)
    if len(mz1) == 0 or len(mz2) == 0:
        return results

    max_mz = max(np.amax(mz1), np.amax(mz2))
    table_size = int(math.ceil(max_mz / tolerance)) + 1
    ion_table1 = np.zeros(table_size)
    ion_table2 = np.zeros(table_size)
    ion_table1[np.ceil(np.asarray(mz1) / tolerance).astype(np.intp)] = 10.0
    ion_table2[np.ceil(np.asarray(mz2) / tolerance).astype(np.intp)] = 10.0
    ion_table1 -= ion_table1.mean()
    ion_table2 -= ion_table2.mean()

    denom = math.sqrt(np.sum(ion_table1 ** 2) * np.sum(ion_table2 ** 2))
    if denom <= 0:
        return results
    for shift in range(-max_shift, max_shift + 1):
        if abs(shift) >= table_size:
            continue
        if shift >= 0:
            s = np.dot(ion_table1[:table_size - shift], ion_table2[shift:])
        else:
            s = np.dot(ion_table1[-shift:], ion_table2[:table_size + shift])
        results[shift + max_shift] = s / denom
    return results


def fragment_annotations(matches, theoretical, peaks, chain, series):
    """
    Annotation rows for the matched peaks of one theoretical series.

    :param matches: (ndarray intp (n, 2)) (theoretical index, peak index) alignment
    :param theoretical: (ndarray, dtypes.theoretical_peaks) theoretical peaks
    :param peaks: (Spectrum) experimental peaks
    :param chain: (str) 'alpha' or 'beta'
    :param series: (str) 'ci' for common or 'xi' for cross-link ions
    :return: (ndarray, dtypes.fragment_annotations) annotations
    """
    annotations = np.empty(len(matches), dtypes.fragment_annotations)
    if len(matches) == 0:
        return annotations
    matched_theoretical = theoretical[matches[:, 0]]
    annotations['peak_mz'] = peaks.mz_values[matches[:, 1]]
    annotations['peak_int'] = peaks.int_values[matches[:, 1]]
    annotations['charge'] = matched_theoretical['charge']
    annotations['annotation'] = [
        '[%s|%s$%s%d]' % (chain, series, ion_type.decode('ascii'), idx)
        for ion_type, idx in zip(matched_theoretical['ion_type'], matched_theoretical['idx'])]
    return annotations


class PairScorer:
    """Scores the candidates of preprocessed spectrum pairs."""

    def __init__(self, context, peptide_db):
        """
        Initialise the PairScorer.

        :param context: (ContextBase) context holding the config and tolerances
        :param peptide_db: (PeptideDatabase) peptide table the candidates refer to
        """
        self.context = context
        self.peptide_db = peptide_db
        self.deltas = mass.mod_deltas(context.config)

    def autocorrelation_sums(self, all_peaks):
        """Summed auto-correlation of all peaks for the cross-link and common bin widths."""
        aucorr_x = x_correlation(all_peaks.mz_values, all_peaks.mz_values,
                                 const.XCORR_MAX_SHIFT, const.XCORR_XLINK_BIN)
        aucorr_c = x_correlation(all_peaks.mz_values, all_peaks.mz_values,
                                 const.XCORR_MAX_SHIFT, const.XCORR_COMMON_BIN)
        return aucorr_x.sum(), aucorr_c.sum()

    def score(self, candidate, pair_spectra, precursor_mass, precursor_charge, aucorr_sums,
              order=0):
        """
        Score a candidate against a preprocessed spectrum pair.

        :param candidate: (CrossLinkCandidate) the candidate
        :param pair_spectra: (PairSpectra) common, cross-link and all peaks of the pair
        :param precursor_mass: (float) neutral precursor mass of the light spectrum
        :param precursor_charge: (int) precursor charge of the light spectrum
        :param aucorr_sums: (tuple) summed auto-correlations, see `autocorrelation_sums`
        :param order: (int) construction order of the match (used to break score ties)
        :return: (CrossLinkSpectrumMatch) the match or None if no peak matched
        """
        common_peaks = pair_spectra.common_peaks
        xlink_peaks = pair_spectra.xlink_peaks
        ms2_atol = self.context.get_ms2_atol()
        ms2_rtol = self.context.get_ms2_rtol()
        xlink_atol = self.context.get_xlink_atol()
        xlink_rtol = self.context.get_xlink_rtol()
        is_cross_link = candidate.link_type == LinkType.CROSS

        theoretical = theoretical_spectra(candidate, self.peptide_db, self.deltas,
                                          precursor_mass, precursor_charge)

        matched_common_alpha = align_spectra(theoretical.common_alpha['mz'],
                                             common_peaks.mz_values, ms2_atol, ms2_rtol)
        matched_common_beta = align_spectra(theoretical.common_beta['mz'],
                                            common_peaks.mz_values, ms2_atol, ms2_rtol)
        matched_xlink_alpha = align_spectra(theoretical.xlink_alpha['mz'],
                                            xlink_peaks.mz_values, xlink_atol, xlink_rtol)
        matched_xlink_beta = align_spectra(theoretical.xlink_beta['mz'],
                                           xlink_peaks.mz_values, xlink_atol, xlink_rtol)

        matched_alpha = len(matched_common_alpha) + len(matched_xlink_alpha)
        matched_beta = len(matched_common_beta) + len(matched_xlink_beta)
        if matched_alpha + matched_beta == 0:
            return None
        theoretical_alpha = len(theoretical.common_alpha) + len(theoretical.xlink_alpha)
        theoretical_beta = len(theoretical.common_beta) + len(theoretical.xlink_beta)

        if is_cross_link:
            prescore = pre_score(matched_alpha, theoretical_alpha, matched_beta, theoretical_beta)
        else:
            prescore = pre_score(matched_alpha, theoretical_alpha)

        intsum = total_matched_current([matched_common_alpha, matched_common_beta],
                                       [matched_xlink_alpha, matched_xlink_beta],
                                       common_peaks, xlink_peaks)
        total_current = common_peaks.int_values.sum() + xlink_peaks.int_values.sum()
        perc_tic = intsum / total_current if total_current > 0 else 0.0

        intsum_alpha = total_matched_current([matched_common_alpha], [matched_xlink_alpha],
                                             common_peaks, xlink_peaks)
        intsum_beta = 0.0
        if is_cross_link:
            intsum_beta = total_matched_current([matched_common_beta], [matched_xlink_beta],
                                                common_peaks, xlink_peaks)
        if intsum_alpha + intsum_beta > 0:
            intsum_alpha = intsum_alpha * intsum / (intsum_alpha + intsum_beta)
            # normalised with the already updated alpha intensity
            intsum_beta = intsum_beta * intsum / (intsum_alpha + intsum_beta)

        alpha_size = self.peptide_db.lengths[candidate.alpha_index]
        beta_size = self.peptide_db.lengths[candidate.beta_index] if is_cross_link else 0
        wtic = weighted_tic_score(alpha_size, beta_size, intsum_alpha, intsum_beta,
                                  total_current, is_cross_link)

        # charge states the cross-link ion odds are spread over
        n_xlink_charges = max(1, int(precursor_charge) - 3)
        match_odds_alpha = \
            match_odds_score(theoretical.common_alpha['mz'], len(matched_common_alpha),
                             ms2_atol, ms2_rtol) + \
            match_odds_score(theoretical.xlink_alpha['mz'], len(matched_xlink_alpha),
                             xlink_atol, xlink_rtol, True, n_xlink_charges)
        if is_cross_link:
            match_odds_beta = \
                match_odds_score(theoretical.common_beta['mz'], len(matched_common_beta),
                                 ms2_atol, ms2_rtol) + \
                match_odds_score(theoretical.xlink_beta['mz'], len(matched_xlink_beta),
                                 xlink_atol, xlink_rtol, True, n_xlink_charges)
            match_odds = (match_odds_alpha + match_odds_beta) / 4
        else:
            match_odds = match_odds_alpha / 2

        aucorr_sum_x, aucorr_sum_c = aucorr_sums
        xcorrx = x_correlation(xlink_peaks.mz_values, theoretical.xlinks['mz'],
                               const.XCORR_MAX_SHIFT, const.XCORR_XLINK_BIN).sum()
        xcorrc = x_correlation(common_peaks.mz_values, theoretical.common['mz'],
                               const.XCORR_MAX_SHIFT, const.XCORR_COMMON_BIN).sum()
        xcorrx = xcorrx / aucorr_sum_x if aucorr_sum_x != 0 else 0.0
        xcorrc = xcorrc / aucorr_sum_c if aucorr_sum_c != 0 else 0.0

        score = const.XCORRX_WEIGHT * xcorrx + const.XCORRC_WEIGHT * xcorrc + \
            const.MATCH_ODDS_WEIGHT * match_odds + const.WTIC_WEIGHT * wtic + \
            const.INTSUM_WEIGHT * intsum

        annotations = np.concatenate([
            fragment_annotations(matched_common_alpha, theoretical.common_alpha, common_peaks,
                                 'alpha', 'ci'),
            fragment_annotations(matched_common_beta, theoretical.common_beta, common_peaks,
                                 'beta', 'ci'),
            fragment_annotations(matched_xlink_alpha, theoretical.xlink_alpha, xlink_peaks,
                                 'alpha', 'xi'),
            fragment_annotations(matched_xlink_beta, theoretical.xlink_beta, xlink_peaks,
                                 'beta', 'xi')])
        # unique and sorted
        annotations = np.unique(annotations)

        return CrossLinkSpectrumMatch(
            candidate, score=score, pre_score=prescore, perc_tic=perc_tic, wtic=wtic,
            int_sum=intsum, match_odds=match_odds, xcorrx=xcorrx, xcorrc=xcorrc,
            matched_common_alpha=len(matched_common_alpha),
            matched_common_beta=len(matched_common_beta),
            matched_xlink_alpha=len(matched_xlink_alpha),
            matched_xlink_beta=len(matched_xlink_beta),
            annotations=annotations, order=order)
