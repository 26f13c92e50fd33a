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

"""Last Sample Storage.

The counters seen on the last run are remembered along with when they were
seen. Both stores have the same interface:

    last = store.load()
    ...
    store.save(now, raw, last)

load() returns a dict of counter name -> Sample. Either field of a Sample
can be None if it wasn't stored or didn't make sense.

CounterStore
------------

The default. A JSON file at <workdir>/mackerel-plugin-pdns/last:

    { "udp-queries": { "value": 1234, "at": 1700000000 }, ... }

A missing file is the same as an empty one. A file which can't be parsed
is an error, we don't attempt to fix it.

RedisCounterStore
-----------------

Each counter is a hash with "value" and "at" fields:

    mackerel-plugin-pdns;udp-queries

The TTL is set to rates.MAX_SAMPLE_AGE, there's no point remembering a
sample which is too old to be used.
"""

import os
import json
import logging
import tempfile
from collections import namedtuple

import redis

from .rates import MAX_SAMPLE_AGE

PLUGIN_NAME = 'mackerel-plugin-pdns'
LAST_FILE = 'last'
REDIS_KEY = PLUGIN_NAME + ';{}'
REDIS_WILDCARD = '*'

Sample = namedtuple('Sample', 'value at')

class StoreError(Exception):
    pass

def json_int(v):
    """v if it's a JSON integer, otherwise None. Booleans are not integers here."""
    if isinstance(v, bool) or not isinstance(v, int):
        return None
    return v

def to_int(v):
    """A Redis field (a string) as an int, or None."""
    try:
        return int(v)
    except (TypeError, ValueError):
        return None

def reject_constant(name):
    """NaN and Infinity are not JSON."""
    raise ValueError('{} is not a valid JSON value'.format(name))

def merge(at, raw, previous):
    """A copy of previous updated with everything in raw, seen at the time at."""
    merged = dict(previous)
    for k, v in raw.items():
        merged[k] = Sample(v, at)
    return merged

class CounterStore(object):
    """JSON file storage."""

    def __init__(self, workdir):
        self.directory = os.path.join(workdir, PLUGIN_NAME)
        self.path = os.path.join(self.directory, LAST_FILE)
        return

    def load(self):
        try:
            with open(self.path) as f:
                document = json.load(f, parse_constant=reject_constant)
        except FileNotFoundError:
            logging.info('No last sample at {}'.format(self.path))
            return dict()
        except ValueError as e:
            raise StoreError('{} is corrupt: {}'.format(self.path, e))

        if not isinstance(document, dict):
            raise StoreError('{} is corrupt: not an object'.format(self.path))
        last = dict()
        for k, entry in document.items():
            if not isinstance(entry, dict):
                raise StoreError('{} is corrupt: bad entry for {}'.format(self.path, k))
            last[k] = Sample(json_int(entry.get('value')), json_int(entry.get('at')))
        return last

    def save(self, at, raw, previous):
        """Write previous updated with raw.

        Counters in previous which aren't in raw are kept as they are. The file
        is replaced atomically.
        """
        document = dict()
        for k, sample in merge(at, raw, previous).items():
            entry = dict()
            if sample.value is not None:
                entry['value'] = sample.value
            if sample.at is not None:
                entry['at'] = sample.at
            document[k] = entry

        os.makedirs(self.directory, exist_ok=True)
        fd, temp_path = tempfile.mkstemp(prefix='.' + LAST_FILE, dir=self.directory)
        try:
            f = os.fdopen(fd, 'w')
        except BaseException:
            os.close(fd)
            os.unlink(temp_path)
            raise
        try:
            with f:
                json.dump(document, f)
            os.replace(temp_path, self.path)
        except BaseException:
            os.unlink(temp_path)
            raise
        logging.debug('Saved {} samples to {}'.format(len(document), self.path))
        return

class RedisCounterStore(object):
    """Redis storage."""

    CONNECT_TIMEOUT = 5

    def __init__(self, redis_server, ttl=MAX_SAMPLE_AGE, client=None):
        self.ttl = ttl
        if client is None:
            self.redis = redis.client.Redis(redis_server, decode_responses=True,
                                            socket_connect_timeout=self.CONNECT_TIMEOUT
                                           )
        else:
            self.redis = client
        return

    @staticmethod
    def counter_name(key):
        return key[len(REDIS_KEY.format('')):]

    def load(self):
        try:
            keys = sorted(self.redis.scan_iter(match=REDIS_KEY.format(REDIS_WILDCARD)))
            pipeline = self.redis.pipeline(transaction=False)
            for key in keys:
                pipeline.hgetall(key)
            hashes = pipeline.execute()
        except redis.exceptions.RedisError as e:
            raise StoreError('Redis error: {} {}'.format(type(e).__name__, e))

        last = dict()
        for key, fields in zip(keys, hashes):
            # Expired between the scan and the read.
            if not fields:
                continue
            last[self.counter_name(key)] = Sample(to_int(fields.get('value')), to_int(fields.get('at')))
        return last

    def save(self, at, raw, previous):
        """Write raw. Counters not in raw are left to expire on their own."""
        try:
            pipeline = self.redis.pipeline(transaction=False)
            for k, v in raw.items():
                key = REDIS_KEY.format(k)
                pipeline.hset(key, mapping=dict(value=v, at=at))
                pipeline.expire(key, self.ttl)
            pipeline.execute()
        except redis.exceptions.RedisError as e:
            raise StoreError('Redis error: {} {}'.format(type(e).__name__, e))
        logging.debug('Saved {} samples to Redis'.format(len(raw)))
        return
