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

import unittest
import subprocess
from unittest import mock

import pdnsplugin.sampler as sampler

class TestParse(unittest.TestCase):
    """Tests for the counter parser."""

    def test_basic(self):
        """Empty key skipped, non numeric is 0."""
        self.assertEqual(sampler.parse('a=1,b=2,=3,c=x'), dict(a=1, b=2, c=0))
        return

    def test_trailing(self):
        """Trailing comma and newline."""
        self.assertEqual(sampler.parse('udp-queries=10,latency=0,\n'), {'udp-queries': 10, 'latency': 0})
        return

    def test_order(self):
        self.assertEqual(list(sampler.parse('z=1,a=2,m=3')), ['z', 'a', 'm'])
        return

    def test_no_value(self):
        self.assertEqual(sampler.parse('a,b='), dict(a=0, b=0))
        return

    def test_empty(self):
        self.assertEqual(sampler.parse(''), dict())
        return

class TestAtoi(unittest.TestCase):

    def test_leading_digits(self):
        self.assertEqual(sampler.atoi('123abc'), 123)
        self.assertEqual(sampler.atoi(' 42'), 42)
        self.assertEqual(sampler.atoi('-7'), -7)
        return

    def test_junk(self):
        self.assertEqual(sampler.atoi('x'), 0)
        self.assertEqual(sampler.atoi(''), 0)
        self.assertEqual(sampler.atoi('1.5'), 1)
        return

class TestControlCommand(unittest.TestCase):
    """Tests for running pdns_control."""

    def setUp(self):
        self.command = sampler.ControlCommand('/usr/bin/pdns_control')
        return

    @staticmethod
    def completed(returncode=0, stdout=b'', stderr=b''):
        return subprocess.CompletedProcess(['pdns_control'], returncode, stdout, stderr)

    def test_argv(self):
        self.assertEqual(self.command.argv, ['/usr/bin/pdns_control', 'show', '*'])
        return

    def test_output(self):
        with mock.patch('subprocess.run', return_value=self.completed(stdout=b'a=1,b=2\n')) as run:
            self.assertEqual(self.command.fetch(), 'a=1,b=2\n')
        self.assertEqual(run.call_args[0][0], ['/usr/bin/pdns_control', 'show', '*'])
        return

    def test_failed(self):
        """Nonzero exit status."""
        with mock.patch('subprocess.run', return_value=self.completed(1, b'a=1', b'Unable to connect')):
            with self.assertRaises(sampler.SamplerError):
                self.command.fetch()
        return

    def test_no_output(self):
        with mock.patch('subprocess.run', return_value=self.completed(stdout=b'  \n')):
            with self.assertRaises(sampler.SamplerError):
                self.command.fetch()
        return

    def test_timeout(self):
        with mock.patch('subprocess.run', side_effect=subprocess.TimeoutExpired('pdns_control', 1)):
            with self.assertRaises(sampler.SamplerError):
                self.command.fetch()
        return

    def test_missing_command(self):
        """Doesn't exist, so it can't be run."""
        with self.assertRaises(sampler.SamplerError):
            sampler.ControlCommand('/nonexistent/pdns_control').fetch()
        return

class FakeSource(object):
    def __init__(self, text):
        self.text = text
        return

    def fetch(self):
        return self.text

class TestSampler(unittest.TestCase):

    def test_sample(self):
        self.assertEqual(sampler.Sampler(FakeSource('udp-queries=5,uptime=99')).sample(),
                         {'udp-queries': 5, 'uptime': 99}
                        )
        return

if __name__ == '__main__':
    unittest.main(verbosity=2)
