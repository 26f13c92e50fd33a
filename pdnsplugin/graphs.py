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

"""Graph Definitions.

When the agent sets MACKEREL_AGENT_PLUGIN_META=1 we print

    # mackerel-agent-plugin
    {"graphs":{"<prefix>.<graph>":{"label":...,"unit":...,"metrics":[...]},...}}

instead of metrics. Tooling parses this, so the output has to be the same
every time: the graphs are sorted and the JSON is compact.

Rates are per minute, which is why most of the units are "float".
"""

import sys
import json
from collections import namedtuple

META_MARKER = '# mackerel-agent-plugin'

Graph = namedtuple('Graph', 'title unit metrics')
Metric = namedtuple('Metric', 'name label stacked')

def metric(name, label, stacked=False):
    return Metric(name, label, stacked)

GRAPHS = {
        'answers':  Graph('Answers', 'float', (
                        metric('udp', 'UDP'),
                        metric('tcp', 'TCP'),
                        metric('udp4', 'UDP IPv4', True),
                        metric('udp6', 'UDP IPv6', True),
                        metric('tcp4', 'TCP IPv4', True),
                        metric('tcp6', 'TCP IPv6', True)
                    )),
        'queries':  Graph('Queries', 'float', (
                        metric('udp', 'UDP'),
                        metric('tcp', 'TCP'),
                        metric('udp4', 'UDP IPv4', True),
                        metric('udp6', 'UDP IPv6', True),
                        metric('tcp4', 'TCP IPv4', True),
                        metric('tcp6', 'TCP IPv6', True)
                    )),
        'cache':    Graph('Cache', 'float', (
                        metric('packetcache_hit', 'Packet Cache Hit'),
                        metric('packetcache_miss', 'Packet Cache Miss'),
                        metric('query_cache_hit', 'Query Cache Hit'),
                        metric('query_cache_miss', 'Query Cache Miss'),
                        metric('deferred_cache_inserts', 'Deferred Cache Inserts'),
                        metric('deferred_cache_lookup', 'Deferred Cache Lookup')
                    )),
        'memory':   Graph('Memory', 'bytes', (
                        metric('real_memory_usage', 'Real Memory Usage'),
                    )),
        'cpu':      Graph('CPU (msec)', 'float', (
                        metric('sys', 'System', True),
                        metric('user', 'User', True)
                    )),
        'latency':  Graph('Latency (usec)', 'integer', (
                        metric('latency', 'Latency'),
                    )),
        'queue':    Graph('Queue', 'integer', (
                        metric('qsize_q', 'Queue Size'),
                    )),
        'cache_size': Graph('Cache Size', 'integer', (
                        metric('packetcache', 'Packet Cache'),
                        metric('query_cache', 'Query Cache'),
                        metric('key_cache', 'Key Cache'),
                        metric('meta_cache', 'Meta Cache'),
                        metric('signature_cache', 'Signature Cache')
                    )),
        'signatures': Graph('Signatures', 'float', (
                        metric('signatures', 'Signatures'),
                    )),
        'notifications': Graph('Notifications', 'float', (
                        metric('incoming', 'Incoming'),
                    )),
        'dnsupdate': Graph('DNS Update', 'float', (
                        metric('queries', 'Queries'),
                        metric('answers', 'Answers'),
                        metric('changes', 'Changes'),
                        metric('refused', 'Refused')
                    )),
        'errors':   Graph('Errors', 'float', (
                        metric('servfail', 'SERVFAIL'),
                        metric('timedout', 'Timed Out'),
                        metric('corrupt', 'Corrupt')
                    ))
    }

def graph_keys():
    """All of the <graph>.<metric> keys which are defined."""
    return { '{}.{}'.format(graph, m.name) for graph, definition in GRAPHS.items() for m in definition.metrics }

def definitions(key_prefix, label_prefix):
    """The graphs as a dict ready to be serialized."""
    graphs = dict()
    for graph in sorted(GRAPHS.keys()):
        definition = GRAPHS[graph]
        metrics = []
        for m in definition.metrics:
            descriptor = dict(name=m.name, label=m.label)
            if m.stacked:
                descriptor['stacked'] = True
            metrics.append(descriptor)
        graphs['{}.{}'.format(key_prefix, graph)] = dict(
                label = '{} {}'.format(label_prefix, definition.title),
                unit = definition.unit,
                metrics = metrics
            )
    return dict(graphs=graphs)

def publish(key_prefix, label_prefix, out=None):
    """Write the marker line and the JSON."""
    if out is None:
        out = sys.stdout
    print(META_MARKER, file=out)
    print(json.dumps(definitions(key_prefix, label_prefix), separators=(',', ':')), file=out)
    return
