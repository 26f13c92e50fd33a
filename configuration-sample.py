"""Plugin Configuration. Copy to configuration.py to use it.

Anything set here is a default, the command line still wins. See
pdnsplugin.config.DEFAULTS for what can be set.
"""

import logging

CONTROL_COMMAND = '/usr/bin/pdns_control'
METRIC_KEY_PREFIX = 'powerdns'
METRIC_LABEL_PREFIX = 'PowerDNS'

# Set this to keep the last sample in Redis instead of a file.
# REDIS_SERVER = '10.0.0.224'
REDIS_SERVER = None

# Seconds to wait for pdns_control. None waits forever.
TIMEOUT = 10

# Determines the logging level if not None
LOG_LEVEL = logging.WARNING
# LOG_LEVEL = None
