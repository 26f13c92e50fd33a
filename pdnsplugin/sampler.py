#!/usr/bin/python3
# Copyright (c) 2024 by Fred Morris Tacoma WA
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#    http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Counter Sampling.

The counters come from a counter source, which is anything with a fetch()
method returning the raw text. Normally that's ControlCommand, which runs

    pdns_control show *

and returns what it prints, something like:

    corrupt-packets=0,deferred-cache-inserts=12,...,udp6-queries=9,

Parsing is lenient, the way atoi() is: a value which doesn't start with
digits is 0.
"""

import logging
import re
import subprocess

SHOW_ALL = ('show', '*')
ITEM_SEPARATOR = ','
VALUE_SEPARATOR = '='
LEADING_INTEGER = re.compile(r'\s*([+-]?\d+)')

class SamplerError(Exception):
    pass

def atoi(value):
    """Leading (optionally signed) digits as an int, otherwise 0."""
    matched = LEADING_INTEGER.match(value)
    if not matched:
        return 0
    return int(matched.group(1))

def parse(text):
    """Parse key=value,key=value... into a dict.

    Empty keys are skipped. A key without a value is 0.
    """
    counters = dict()
    for item in text.rstrip().split(ITEM_SEPARATOR):
        key, _, value = item.partition(VALUE_SEPARATOR)
        key = key.strip()
        if not key:
            continue
        counters[key] = atoi(value)
    return counters

class ControlCommand(object):
    """A counter source which runs the PowerDNS control command."""

    def __init__(self, command, timeout=None):
        self.command = command
        self.timeout = timeout
        return

    @property
    def argv(self):
        return [ self.command ] + list(SHOW_ALL)

    def fetch(self):
        """Run the command and return stdout.

        Failing to launch, a nonzero exit status, a timeout or no output at all
        are all SamplerError.
        """
        logging.debug('Running {}'.format(' '.join(self.argv)))
        try:
            completed = subprocess.run(self.argv, stdout=subprocess.PIPE, stderr=subprocess.PIPE,
                                       timeout=self.timeout, check=False
                                      )
        except subprocess.TimeoutExpired:
            raise SamplerError('{} timed out after {}s'.format(self.command, self.timeout))
        except OSError as e:
            raise SamplerError('{} failed to run: {}'.format(self.command, e))

        if completed.returncode != 0:
            raise SamplerError('{} exited with status {}: {}'.format(
                                    self.command, completed.returncode,
                                    completed.stderr.decode(errors='replace').strip()
                              )   )
        output = completed.stdout.decode(errors='replace')
        if not output.strip():
            raise SamplerError('{} produced no output'.format(self.command))
        return output

class Sampler(object):
    """Takes a sample from a counter source."""

    def __init__(self, source):
        self.source = source
        return

    def sample(self):
        """Returns a dict of counter name -> int."""
        counters = parse(self.source.fetch())
        logging.debug('Sampled {} counters'.format(len(counters)))
        return counters
