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

"""Counter Translation and Rates.

Raw PowerDNS counter names are translated to metric keys. Some counters are
gauges and are reported as is; the rest are cumulative and are reported as
the average change per minute since the last sample.

    rate = (value - last.value) * 60 / (now - last.at)

No rate is reported when:

  * there is no last sample (or it's missing the value or the timestamp)
  * now is not after the last sample (duplicate or out of order run)
  * the last sample is more than MAX_SAMPLE_AGE seconds old

Counter resets are not detected, a reset produces a negative rate.
"""

import logging
from collections import namedtuple

SECONDS_PER_MINUTE = 60
MAX_SAMPLE_AGE = 600

Translation = namedtuple('Translation', 'key is_rate')

def rate(key):
    return Translation(key, True)

def gauge(key):
    return Translation(key, False)

# The keys are <graph>.<metric>, see graphs.GRAPHS.
#
# Not translated, and so never reported:
#
#   recursing-answers recursing-questions recursion-unanswered
#   udp-in-errors udp-noport-errors udp-recvbuf-errors udp-sndbuf-errors
#   uptime security-status
TRANSLATIONS = {
        'udp-answers':              rate('answers.udp'),
        'udp4-answers':             rate('answers.udp4'),
        'udp6-answers':             rate('answers.udp6'),
        'tcp-answers':              rate('answers.tcp'),
        'tcp4-answers':             rate('answers.tcp4'),
        'tcp6-answers':             rate('answers.tcp6'),

        'udp-queries':              rate('queries.udp'),
        'udp4-queries':             rate('queries.udp4'),
        'udp6-queries':             rate('queries.udp6'),
        'tcp-queries':              rate('queries.tcp'),
        'tcp4-queries':             rate('queries.tcp4'),
        'tcp6-queries':             rate('queries.tcp6'),

        'packetcache-hit':          rate('cache.packetcache_hit'),
        'packetcache-miss':         rate('cache.packetcache_miss'),
        'query-cache-hit':          rate('cache.query_cache_hit'),
        'query-cache-miss':         rate('cache.query_cache_miss'),
        'deferred-cache-inserts':   rate('cache.deferred_cache_inserts'),
        'deferred-cache-lookup':    rate('cache.deferred_cache_lookup'),

        'real-memory-usage':        gauge('memory.real_memory_usage'),

        'sys-msec':                 rate('cpu.sys'),
        'user-msec':                rate('cpu.user'),

        'latency':                  gauge('latency.latency'),

        'qsize-q':                  gauge('queue.qsize_q'),

        'packetcache-size':         gauge('cache_size.packetcache'),
        'query-cache-size':         gauge('cache_size.query_cache'),
        'key-cache-size':           gauge('cache_size.key_cache'),
        'meta-cache-size':          gauge('cache_size.meta_cache'),
        'signature-cache-size':     gauge('cache_size.signature_cache'),

        'signatures':               rate('signatures.signatures'),

        'incoming-notifications':   rate('notifications.incoming'),

        'dnsupdate-answers':        rate('dnsupdate.answers'),
        'dnsupdate-changes':        rate('dnsupdate.changes'),
        'dnsupdate-queries':        rate('dnsupdate.queries'),
        'dnsupdate-refused':        rate('dnsupdate.refused'),

        'servfail-packets':         rate('errors.servfail'),
        'timedout-packets':         rate('errors.timedout'),
        'corrupt-packets':          rate('errors.corrupt')
    }

def resolve(name):
    """Returns the Translation for the raw counter name, or None."""
    return TRANSLATIONS.get(name)

def compute_rate(now, value, last):
    """Per minute rate of change since the last sample.

    last is a store.Sample (or None). Returns None if no rate can be derived.
    """
    if last is None or last.at is None or last.value is None:
        return None
    if now <= last.at or now > last.at + MAX_SAMPLE_AGE:
        return None
    return (value - last.value) * float(SECONDS_PER_MINUTE) / (now - last.at)

def translate(now, raw, last):
    """Generates (key, value) for everything which can be reported.

    Parameters:

        now     The time (integer seconds) the raw sample was taken.
        raw     A dict of raw counter name -> integer value.
        last    A dict of raw counter name -> store.Sample from the last run.

    The order of raw is preserved. Gauges are passed through untouched.
    """
    for name, value in raw.items():
        translation = resolve(name)
        if translation is None:
            continue
        if not translation.is_rate:
            yield translation.key, value
            continue
        derived = compute_rate(now, value, last.get(name))
        if derived is None:
            logging.debug('No baseline for {} at {}'.format(name, now))
            continue
        yield translation.key, derived
    return
