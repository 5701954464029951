################################################################################
#  Licensed to the Apache Software Foundation (ASF) under one
#  or more contributor license agreements.  See the NOTICE file
#  distributed with this work for additional information
#  regarding copyright ownership.  The ASF licenses this file
#  to you under the Apache License, Version 2.0 (the
#  "License"); you may not use this file except in compliance
#  with the License.  You may obtain a copy of the License at
#
#      http://www.apache.org/licenses/LICENSE-2.0
#
#  Unless required by applicable law or agreed to in writing, software
#  distributed under the License is distributed on an "AS IS" BASIS,
#  WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
#  See the License for the specific language governing permissions and
# limitations under the License.
################################################################################

import os
import shutil
import tempfile
import threading
import unittest

from pyicemanifest.common.closeable_group import CloseableGroup
from pyicemanifest.common.exceptions import RuntimeIOException
from pyicemanifest.common.file_io import FileIO
from pyicemanifest.common.options import ConfigOptions, Options
from pyicemanifest.common.options.config import ManifestReadOptions
from pyicemanifest.metrics.scan_metrics import ScanMetrics


class _Resource:

    def __init__(self, name, log, error=None):
        self.name = name
        self.log = log
        self.error = error

    def close(self):
        self.log.append(self.name)
        if self.error is not None:
            raise self.error


class CloseableGroupTest(unittest.TestCase):

    def test_closes_each_resource_once(self):
        log = []
        group = CloseableGroup()
        group.add_closeable(_Resource("a", log))
        group.add_closeable(_Resource("b", log))
        group.close()
        group.close()
        self.assertEqual(["a", "b"], log)
        self.assertTrue(group.is_closed())

    def test_first_failure_is_raised_after_all_resources_close(self):
        log = []
        group = CloseableGroup()
        group.add_closeable(_Resource("a", log, OSError("first")))
        group.add_closeable(_Resource("b", log, OSError("second")))
        group.add_closeable(_Resource("c", log))
        with self.assertLogs("pyicemanifest.common.closeable_group", level="WARNING"):
            with self.assertRaisesRegex(OSError, "first"):
                group.close()
        self.assertEqual(["a", "b", "c"], log)

    def test_resource_added_after_close_is_closed(self):
        log = []
        with CloseableGroup() as group:
            pass
        group.add_closeable(_Resource("late", log))
        self.assertEqual(["late"], log)

    def test_removed_resource_is_left_to_its_owner(self):
        log = []
        group = CloseableGroup()
        resource = _Resource("a", log)
        group.add_closeable(resource)
        group.add_closeable(_Resource("b", log))
        group.remove_closeable(resource)
        group.remove_closeable(resource)
        group.close()
        self.assertEqual(["b"], log)


class OptionsTest(unittest.TestCase):

    def test_typed_values(self):
        int_option = ConfigOptions.key("a.int").int_type().default_value(3)
        options = Options({"a.int": " 12 ", "manifest.read.case-sensitive": "FALSE"})
        self.assertEqual(12, options.get(int_option))
        self.assertEqual(3, Options().get(int_option))
        self.assertEqual(7, Options().get(int_option, 7))
        read_options = ManifestReadOptions(options)
        self.assertFalse(read_options.case_sensitive())
        self.assertTrue(read_options.reuse_containers())

    def test_set_and_copy(self):
        options = Options().set(ManifestReadOptions.REUSE_CONTAINERS, False)
        self.assertEqual("false", options.to_map()["manifest.read.reuse-containers"])
        copied = options.copy()
        copied.set(ManifestReadOptions.REUSE_CONTAINERS, True)
        self.assertFalse(ManifestReadOptions(options).reuse_containers())
        self.assertTrue(copied.contains(ManifestReadOptions.REUSE_CONTAINERS))

    def test_invalid_boolean(self):
        with self.assertRaises(ValueError):
            ManifestReadOptions.from_dict({"manifest.read.case-sensitive": "maybe"}).case_sensitive()


class FileIOTest(unittest.TestCase):

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        self.file_io = FileIO(self.temp_dir)

    def tearDown(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_write_then_read(self):
        path = os.path.join(self.temp_dir, "nested", "dir", "file.bin")
        with self.file_io.new_output_stream(path) as output_stream:
            output_stream.write(b"manifest")
        self.assertTrue(self.file_io.exists(path))
        self.assertEqual(8, self.file_io.get_file_size(path))
        input_file = self.file_io.new_input_file("file://" + path)
        self.assertEqual(8, input_file.get_length())
        with input_file.new_stream() as input_stream:
            self.assertEqual(b"manifest", input_stream.read())

    def test_missing_file(self):
        input_file = self.file_io.new_input_file(os.path.join(self.temp_dir, "missing.avro"))
        self.assertFalse(input_file.exists())
        with self.assertRaises(RuntimeIOException) as context:
            input_file.new_stream()
        self.assertIsInstance(context.exception.cause, OSError)

    def test_unknown_scheme(self):
        with self.assertRaises(ValueError):
            FileIO("hdfs://namenode/warehouse")

    def test_delete(self):
        path = os.path.join(self.temp_dir, "file.bin")
        with self.file_io.new_output_stream(path) as output_stream:
            output_stream.write(b"x")
        self.assertTrue(self.file_io.delete(path))
        self.assertFalse(self.file_io.exists(path))


class ScanMetricsTest(unittest.TestCase):

    def test_concurrent_increments(self):
        metrics = ScanMetrics.of()

        def work():
            for _ in range(1000):
                metrics.skipped_data_files.increment()

        threads = [threading.Thread(target=work) for _ in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        self.assertEqual(4000, metrics.skipped_data_files.value())
        self.assertEqual(0, metrics.skipped_delete_files.value())

    def test_noop(self):
        metrics = ScanMetrics.noop()
        metrics.skipped_data_files.increment(5)
        self.assertEqual(0, metrics.skipped_data_files.value())
        self.assertIs(metrics, ScanMetrics.noop())
