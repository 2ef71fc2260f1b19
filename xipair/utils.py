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

"""Module containing utility functions."""
import os
import numpy as np


def get_chunks(length, max_chunk_size):
    """
    Given a length and a maximum chunk size, generate a set of chunks of appropriate size.

    For each chunk, yields a tuple of:
        - The starting index of the chunk
        - The size of the chunk
        - A slice object to retrieve this chunk
    """
    chunk_start = 0
    while length > max_chunk_size:
        yield chunk_start, max_chunk_size, slice(chunk_start, chunk_start + max_chunk_size)
        chunk_start += max_chunk_size
        length -= max_chunk_size
    yield chunk_start, length, slice(chunk_start, chunk_start + length)


def thread_count(threads):
    """
    Translate the configured number of threads into the number of worker threads.

    :param threads: (int) 0 for all CPUs, a negative number N for all but N CPUs
    :return: (int) number of worker threads (at least 1)
    """
    cpus = os.cpu_count() or 1
    if threads == 0:
        return cpus
    if threads < 0:
        return max(1, cpus + threads)
    return threads


def tolerance_window(values, atol, rtol):
    """
    Lower and upper bounds of a symmetric tolerance window around each value.

    :param values: (ndarray or float) centre values
    :param atol: (float) absolute tolerance
    :param rtol: (float) relative tolerance
    :return: (tuple) lower bounds, upper bounds
    """
    values = np.asarray(values, dtype=np.float64)
    error = atol + rtol * values
    return values - error, values + error
