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

"""PowerDNS Metrics for mackerel-agent.

Command line:

    pdns_plugin.py [-c|--control-command PATH] [--metric-key-prefix PREFIX]
                   [--metric-label-prefix PREFIX] [--redis-server ADDRESS]
                   [--timeout SECONDS] [--log-level LEVEL]

The agent runs this once per interval. Each run:

  1) runs "pdns_control show *" and parses the counters
  2) reads the counters left behind by the last run
  3) prints gauges as they are and cumulative counters as per minute rates
  4) leaves the counters behind for the next run

If MACKEREL_AGENT_PLUGIN_META=1 then the graph definitions are printed
instead and nothing else happens.

The counters are left behind in $MACKEREL_PLUGIN_WORKDIR/mackerel-plugin-pdns/last
(the temp directory if MACKEREL_PLUGIN_WORKDIR isn't set), or in Redis if
--redis-server is given.

Defaults can also be set in an optional configuration.py, see
pdnsplugin.config.DEFAULTS.

If the control command fails nothing is printed, nothing is saved and the
exit status is 1.
"""

import sys
import os
import logging
import importlib
from time import time

from pdnsplugin.config import configure, ConfigurationError, DEFAULTS
from pdnsplugin.sampler import Sampler, ControlCommand, SamplerError
from pdnsplugin.store import CounterStore, RedisCounterStore, StoreError
from pdnsplugin.rates import translate
from pdnsplugin.emitter import emit
from pdnsplugin.graphs import publish

CONFIG_MODULE = 'configuration'

def lart(msg=None, help='pdns_plugin.py [-c control-command] [--metric-key-prefix prefix] ...'):
    if msg:
        print(msg, file=sys.stderr)
    if help:
        print(help, file=sys.stderr)
    sys.exit(1)

def overrides():
    """Whatever configuration.py sets which we know about."""
    try:
        config = importlib.import_module(CONFIG_MODULE)
    except ModuleNotFoundError as e:
        if e.name != CONFIG_MODULE:
            raise
        return dict()
    return { k: getattr(config, k) for k in DEFAULTS.keys() if hasattr(config, k) }

def counter_store(config):
    if config.redis_server:
        return RedisCounterStore(config.redis_server)
    return CounterStore(config.workdir)

def main(config, source=None, store=None, now=None, out=None):
    """One run.

    source, store and now default to ControlCommand, the configured store and
    the current time.
    """
    if out is None:
        out = sys.stdout

    if config.meta:
        publish(config.key_prefix, config.label_prefix, out)
        return

    if source is None:
        source = ControlCommand(config.control_command, config.timeout)
    if store is None:
        store = counter_store(config)
    if now is None:
        now = int(time())

    raw = Sampler(source).sample()
    last = store.load()
    n = emit(config.key_prefix, translate(now, raw, last), now, out)
    store.save(now, raw, last)

    logging.info('{} counters sampled, {} metrics emitted'.format(len(raw), n))
    return

def run():
    try:
        config = configure(sys.argv[1:], os.environ, overrides())
    except ConfigurationError as e:
        lart(str(e))
    except Exception as e:
        lart('Config load for {} failed: {}'.format(CONFIG_MODULE, e))

    if config.log_level is not None:
        logging.basicConfig(level=config.log_level)

    try:
        main(config)
    except (SamplerError, StoreError) as e:
        lart(str(e), help=None)
    except OSError as e:
        lart('{}: {}'.format(type(e).__name__, e), help=None)
    return

if __name__ == '__main__':
    run()
