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

"""PowerDNS Plugin Utilities.

This is in several parts:

 * sampler:     runs the control command and parses the counters
 * store:       remembers the last counters seen, in a file or in Redis
 * rates:       turns cumulative counters into per minute rates
 * emitter:     writes metric lines for the agent
 * graphs:      the graph definitions published in meta mode
 * config:      the (immutable) configuration

The agent runs us once per interval. Each run samples the counters, compares
them with what the previous run left behind and prints whatever can be
derived. Then it leaves the current counters behind for the next run.

Rates
-----

Most of what PowerDNS reports are cumulative counters which are only
interesting as rates. A rate needs two samples, so the very first run
prints nothing for those. A sample which is older than ten minutes (or from
the future) is not trusted as a baseline either.
"""
