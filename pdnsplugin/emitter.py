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

"""Metric lines, one per metric:

    <prefix>.<key>\\t<value>\\t<unixtime>
"""

import sys

LINE_FORMAT = '{}.{}\t{}\t{}'

def emit(prefix, metrics, at, out=None):
    """Write (key, value) pairs. Returns the number of lines written."""
    if out is None:
        out = sys.stdout
    n = 0
    for key, value in metrics:
        print(LINE_FORMAT.format(prefix, key, value, at), file=out)
        n += 1
    return n
