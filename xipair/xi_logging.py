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

"""Module that handles output (log messages and progress bars)."""
from time import time
from progress.bar import Bar
from queue import Queue
from threading import Thread, Lock
import os
from pathlib import Path


_log_enabled = False
_debug_enabled = False
_log_file = False
_progress_enabled = False
_start_time = time()
_log_queue = None
_log_file_thread = None
# worker threads of the search log concurrently
_print_lock = Lock()


def log_timestamp_reset():
    """Reset the log time to the current time."""
    global _start_time
    _start_time = time()


def log_enable(setting):
    """Enable or disable logging."""
    global _log_enabled
    _log_enabled = bool(setting)


def debug_enable(setting):
    """Enable or disable debug messages (only shown if logging is enabled as well)."""
    global _debug_enabled
    _debug_enabled = bool(setting)


def _log_queue_writer(file, queue):
    """Receive log messages from the queue and write them to the file until False arrives."""
    # create the parent folder of the log-file
    parent_folder = os.path.dirname(file)
    if parent_folder:
        Path(parent_folder).mkdir(parents=True, exist_ok=True)

    with open(file, "a") as log_out:
        while True:
            s = queue.get()
            if s:
                log_out.write(s)
                log_out.write("\n")
                log_out.flush()
            else:
                # take a False as an indication to close down the writer
                break


def log_file(file):
    """
    Define that the log should be writen out to a file.

    :param file - (str,False) if a string then it defines the output path; if False disables writing
    """
    global _log_file
    global _log_queue
    global _log_file_thread

    if isinstance(file, str):
        if _log_queue is not None:
            # close down the old writer
            _log_queue.put(False)
            _log_file_thread.join()
        _log_file = True
        _log_queue = Queue()
        _log_file_thread = Thread(target=_log_queue_writer, args=(file, _log_queue), daemon=True)
        _log_file_thread.start()
    elif isinstance(file, bool) and not file:
        _log_file = False
        if _log_queue is not None:
            _log_queue.put(False)
            if _log_file_thread is not None:
                _log_file_thread.join()
                _log_file_thread = None
        _log_queue = None
    else:
        raise ValueError("log_file only accepts a file path or False as parameter")


def progress_enable(setting):
    """Enable or disable displaying progress bars."""
    global _progress_enabled
    _progress_enabled = bool(setting)


def log(message):
    """Log a message."""
    if _log_enabled or _log_file:
        timestamp = time() - _start_time
        timedmessage = "%.3f: %s" % (timestamp, message)
        if _log_enabled:
            with _print_lock:
                if message:
                    print(timedmessage)
                else:
                    print(flush=True)
        if _log_file:
            if message:
                _log_queue.put(timedmessage)
            else:
                log_file(False)


def debug(message):
    """Log a debug message."""
    if _debug_enabled:
        log("DEBUG " + message)


class ProgressBar(object):
    """Bar to visualize the progression of a process."""
    class NiceEtaBar(Bar):
        len_last_eta = 0

        @property
        def nice_eta(self):
            """
            Transform the eta to a nicer human readable format.
            """
            progress = " remaining (" + str(self.index) + "/" + str(self.max) + ")"
            if self.index == self.max:
                ret = str(self.elapsed_td) + " total"
            else:
                ret = str(int(self.percent*10)/10) + "% ~"
                eta = self.eta
                # more then two days left
                if eta > 172800:
                    ret += str(eta // 86400) + "days " + progress
                # more than 2 hours - report in hours
                elif eta > 7200:
                    ret += str(eta // 3600) + "h " + progress
                # more than two minutes - report in minutes
                elif eta > 120:
                    ret += str(eta // 60) + "m " + progress
                else:
                    ret += str(eta) + "s " + progress

            # clean up left over from last print out
            new_len = len(ret)
            if new_len < self.len_last_eta:
                ret += " " * (self.len_last_eta - new_len)

            self.len_last_eta = new_len
            return ret

    def __init__(self, message, total):
        """Initialise the ProgressBar with a message and a total number."""
        self.message = message
        self.total = total
        self.count = 0
        self.percent = 0
        if _progress_enabled:
            self.timestamp = time() - _start_time
            self.logtimestamp = self.timestamp
            if total > 1:
                self.bar = self.NiceEtaBar("%.3f: %s" % (self.timestamp, message), max=total,
                                           suffix='%(nice_eta)s')
            if _log_file:
                _log_queue.put("%.3f: %s" % (self.timestamp, message))
        else:
            log(message)

    def next(self, add_to_count=1):
        """Progress the bar."""
        self.count += add_to_count
        if _progress_enabled and self.total > 1:
            timestamp = time() - _start_time
            percent = int(self.count / self.total * 100)
            # update the bar if we passed a new percent but at most once per second,
            # or if more than a minute has passed
            if ((percent > self.percent) and (timestamp - self.timestamp > 1)) \
                    or (timestamp - self.timestamp > 60):
                self.timestamp = timestamp
                self.bar.goto(self.count)
                if _log_file:
                    # at most one progress line every ten seconds
                    if (timestamp - self.logtimestamp > 10) and (percent > self.percent):
                        self.logtimestamp = timestamp
                        _log_queue.put("%.3f: %s %i%%" % (self.timestamp, self.message, percent))
                self.percent = percent

    def finish(self):
        """Finish the ProgressBar."""
        if _progress_enabled and self.total > 1:
            self.bar.goto(self.total)
            self.bar.finish()
        if _log_file:
            timestamp = time() - _start_time
            _log_queue.put("%.3f: %s finished" % (timestamp, self.message))
