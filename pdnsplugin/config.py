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

"""Configuration.

Everything is decided once, at startup, and then handed to whoever needs
it. In order of precedence (highest first):

  * command line arguments
  * the environment (MACKEREL_AGENT_PLUGIN_META, MACKEREL_PLUGIN_WORKDIR)
  * defaults, which an optional configuration.py can override

The things configuration.py can set are the keys of DEFAULTS.
"""

import logging
import argparse
import tempfile
from collections import namedtuple

META_ENV = 'MACKEREL_AGENT_PLUGIN_META'
WORKDIR_ENV = 'MACKEREL_PLUGIN_WORKDIR'

DEFAULTS = dict(
        CONTROL_COMMAND =       'pdns_control',
        METRIC_KEY_PREFIX =     'powerdns',
        METRIC_LABEL_PREFIX =   'PowerDNS',
        # Set this to an address to keep the last sample in Redis instead of a file.
        REDIS_SERVER =          None,
        # Seconds to wait for the control command, None waits forever.
        TIMEOUT =               None,
        LOG_LEVEL =             None
    )

Configuration = namedtuple('Configuration',
        'control_command key_prefix label_prefix workdir meta redis_server timeout log_level'
    )

class ConfigurationError(Exception):
    pass

def log_level(value):
    """A level name (INFO) or number (20)."""
    if value is None or isinstance(value, int):
        return value
    if value.isdigit():
        return int(value)
    level = logging.getLevelName(value.upper())
    if not isinstance(level, int):
        raise ConfigurationError('Unknown log level "{}"'.format(value))
    return level

def parser(defaults):
    p = argparse.ArgumentParser(prog='mackerel-plugin-pdns',
                                description='PowerDNS metrics for mackerel-agent.'
                               )
    p.add_argument('-c', '--control-command', default=defaults['CONTROL_COMMAND'],
                   help='path of pdns_control (default %(default)s)')
    p.add_argument('--metric-key-prefix', default=defaults['METRIC_KEY_PREFIX'],
                   help='metric key prefix (default %(default)s)')
    p.add_argument('--metric-label-prefix', default=defaults['METRIC_LABEL_PREFIX'],
                   help='metric label prefix (default %(default)s)')
    p.add_argument('--redis-server', default=defaults['REDIS_SERVER'],
                   help='keep the last sample in this Redis instead of a file')
    p.add_argument('--timeout', type=float, default=defaults['TIMEOUT'],
                   help='seconds to wait for the control command')
    p.add_argument('--log-level', default=defaults['LOG_LEVEL'],
                   help='log to stderr at this level (e.g. DEBUG)')
    return p

def configure(argv, environ, overrides=None):
    """Build the Configuration.

    argv does not include the program name. overrides is a dict with (some
    of) the keys in DEFAULTS.
    """
    defaults = DEFAULTS.copy()
    if overrides:
        defaults.update( (k, v) for k, v in overrides.items() if k in DEFAULTS )

    args = parser(defaults).parse_args(argv)

    if args.timeout is not None and args.timeout <= 0:
        raise ConfigurationError('Timeout must be positive, not {}'.format(args.timeout))

    return Configuration(
            control_command =   args.control_command,
            key_prefix =        args.metric_key_prefix,
            label_prefix =      args.metric_label_prefix,
            workdir =           environ.get(WORKDIR_ENV) or tempfile.gettempdir(),
            meta =              environ.get(META_ENV) == '1',
            redis_server =      args.redis_server,
            timeout =           args.timeout,
            log_level =         log_level(args.log_level)
        )
