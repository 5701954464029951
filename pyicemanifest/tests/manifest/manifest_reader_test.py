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
import unittest

from parameterized import parameterized

from pyicemanifest.common.exceptions import ManifestReaderStateError
from pyicemanifest.common.file_io import FileIO
from pyicemanifest.expressions.expressions import Expressions
from pyicemanifest.manifest.file_format import FileFormat
from pyicemanifest.manifest.inheritable_metadata import \
    InheritableMetadataFactory
from pyicemanifest.manifest.internal_data import AvroReadBuilder, InternalData
from pyicemanifest.manifest.manifest_files import ManifestFiles
from pyicemanifest.manifest.manifest_reader import ManifestReader
from pyicemanifest.manifest.schema.manifest_entry import ManifestEntryStatus
from pyicemanifest.manifest.schema.manifest_file import (ManifestContent,
                                                         ManifestFile)
from pyicemanifest.metrics.scan_metrics import ScanMetrics
from pyicemanifest.partition.partition_set import PartitionSet
from pyicemanifest.partition.partition_spec import (PartitionField,
                                                    PartitionSpec)
from pyicemanifest.partition.transforms import Identity
from pyicemanifest.schema.schema import Schema
from pyicemanifest.schema.types import NestedField, Types
from pyicemanifest.tests.manifest_test_util import (long_bounds,
                                                    new_data_file,
                                                    new_delete_file, new_entry,
                                                    write_manifest)


class _TrackingReadBuilder(AvroReadBuilder):
    """Avro builder that remembers every iterable it built, optionally led by a null row."""

    def __init__(self, input_file, built, leading_null):
        super().__init__(input_file)
        self._built = built
        self._leading_null = leading_null

    def build(self):
        iterable = _TrackingIterable(super().build(), self._leading_null)
        self._built.append(iterable)
        return iterable


class _TrackingIterable:

    def __init__(self, delegate, leading_null):
        self.delegate = delegate
        self.leading_null = leading_null

    def __iter__(self):
        if self.leading_null:
            yield None
        yield from self.delegate

    def close(self):
        self.delegate.close()

    @property
    def closed(self):
        return self.delegate.closed


class ManifestReaderTest(unittest.TestCase):

    @classmethod
    def setUpClass(cls):
        cls.table_schema = Schema([
            NestedField.required_field(1, "id", Types.LONG),
            NestedField.optional_field(2, "data", Types.STRING),
            NestedField.optional_field(3, "category", Types.STRING),
        ])
        cls.spec = PartitionSpec(cls.table_schema, 0, [PartitionField(3, 1000, "category", Identity())])
        cls.specs_by_id = {0: cls.spec}

    def setUp(self):
        self.tempdir = tempfile.mkdtemp()
        self.file_io = FileIO(self.tempdir, {})

    def tearDown(self):
        shutil.rmtree(self.tempdir, ignore_errors=True)

    def _file(self, path, record_count, category, lower_id, upper_id, first_row_id=None):
        return new_data_file(
            self.spec, path, record_count, [category],
            value_counts={1: record_count, 3: record_count},
            null_value_counts={1: 0, 3: 0},
            lower_bounds=long_bounds({1: lower_id}),
            upper_bounds=long_bounds({1: upper_id}),
            first_row_id=first_row_id)

    def _write(self, entries, name="manifest.avro", **kwargs):
        return write_manifest(self.file_io, os.path.join(self.tempdir, name), self.spec, entries, **kwargs)

    def _reader(self, path, first_row_id=None, content=ManifestContent.DATA, specs_by_id=None):
        return ManifestReader(
            self.file_io.new_input_file(path),
            0,
            self.specs_by_id if specs_by_id is None else specs_by_id,
            InheritableMetadataFactory.empty(),
            content,
            first_row_id=first_row_id)

    def _default_manifest(self):
        return self._write([
            new_entry(self._file("a-1.parquet", 10, "a", 0, 9)),
            new_entry(self._file("b-1.parquet", 5, "b", 10, 14), ManifestEntryStatus.EXISTING),
            new_entry(self._file("b-2.parquet", 7, "b", 100, 106), ManifestEntryStatus.DELETED),
            new_entry(self._file("c-1.parquet", 20, "c", 200, 219)),
            new_entry(self._file("c-2.parquet", 3, "c", 300, 302), ManifestEntryStatus.DELETED),
        ])

    def test_live_and_all_entries(self):
        path = self._default_manifest()
        with self._reader(path) as reader:
            files = list(reader)
        self.assertEqual(["a-1.parquet", "b-1.parquet", "c-1.parquet"], [f.file_path for f in files])

        with self._reader(path) as reader:
            statuses = [entry.status for entry in reader.entries()]
        self.assertEqual(5, len(statuses))
        self.assertEqual(2, statuses.count(ManifestEntryStatus.DELETED))

        with self._reader(path) as reader:
            self.assertEqual(3, sum(1 for _ in reader.live_entries()))

    def test_decoded_file_contents(self):
        path = self._default_manifest()
        with self._reader(path) as reader:
            first = next(iter(reader))
        self.assertEqual("PARQUET", first.file_format)
        self.assertEqual(["a"], first.partition.values)
        self.assertEqual(10, first.record_count)
        self.assertEqual({1: 10, 3: 10}, first.value_counts)
        self.assertEqual(long_bounds({1: 9}), first.upper_bounds)
        self.assertEqual(0, first.spec_id)
        self.assertEqual(0, first.pos)
        self.assertEqual(1, first.data_sequence_number)

    def test_metrics_filter_skips_file_once_per_pass(self):
        path = self._default_manifest()
        metrics = ScanMetrics.of()
        reader = self._reader(path).filter_rows(Expressions.greater_than("id", 150)).scan_metrics(metrics)
        with reader:
            self.assertEqual(["c-1.parquet"], [f.file_path for f in reader])
            self.assertEqual(2, metrics.skipped_data_files.value())
            self.assertEqual(["c-1.parquet"], [f.file_path for f in reader])
            self.assertEqual(4, metrics.skipped_data_files.value())
        self.assertEqual(0, metrics.skipped_delete_files.value())

    def test_row_filter_projected_to_partitions(self):
        path = self._default_manifest()
        metrics = ScanMetrics.of()
        with self._reader(path).filter_rows(Expressions.equal("category", "b")).scan_metrics(metrics) as reader:
            self.assertEqual(["b-1.parquet"], [f.file_path for f in reader])
        self.assertEqual(2, metrics.skipped_data_files.value())

    def test_partition_filter(self):
        path = self._default_manifest()
        with self._reader(path).filter_partitions(Expressions.not_equal("category", "b")) as reader:
            self.assertEqual(["a-1.parquet", "c-1.parquet"], [f.file_path for f in reader])

    def test_partition_filters_are_combined(self):
        path = self._default_manifest()
        reader = self._reader(path) \
            .filter_partitions(Expressions.is_in("category", ["a", "b"])) \
            .filter_partitions(Expressions.not_equal("category", "a"))
        with reader:
            self.assertEqual(["b-1.parquet"], [f.file_path for f in reader])

    def test_partition_set_and_expression_must_both_match(self):
        path = self._default_manifest()
        partitions = PartitionSet([(0, ("b",)), (0, ("c",))])
        reader = self._reader(path) \
            .filter_partitions(Expressions.is_in("category", ["a", "b"])) \
            .filter_partitions(partitions)
        with reader:
            self.assertEqual(["b-1.parquet"], [f.file_path for f in reader])

    def test_partition_set_is_scoped_by_spec_id(self):
        path = self._default_manifest()
        with self._reader(path).filter_partitions(PartitionSet([(1, ("a",))])) as reader:
            self.assertEqual([], list(reader))

    def test_select_then_project_fails(self):
        path = self._default_manifest()
        reader = self._reader(path).select(["file_path"])
        with self.assertRaises(ManifestReaderStateError):
            reader.project(reader.schema.select(["file_path", "value_counts"]))
        with reader:
            files = list(reader)
        self.assertEqual(3, len(files))
        self.assertIsNone(files[0].value_counts)

    def test_project_then_select_fails(self):
        path = self._default_manifest()
        reader = self._reader(path).project(self._reader(path).schema.select(["file_path", "value_counts"]))
        with self.assertRaises(ManifestReaderStateError):
            reader.select(["file_path", "lower_bounds"])
        with reader:
            files = list(reader)
        self.assertEqual({1: 10, 3: 10}, files[0].value_counts)
        self.assertIsNone(files[0].lower_bounds)

    def test_selecting_record_count_only_drops_stats(self):
        path = self._default_manifest()
        with self._reader(path).select(["file_path", "record_count"]) as reader:
            files = list(reader)
        self.assertEqual(10, files[0].record_count)
        self.assertIsNone(files[0].value_counts)
        self.assertIsNone(files[0].lower_bounds)

    def test_selecting_a_bounds_column_keeps_stats(self):
        path = self._default_manifest()
        with self._reader(path).select(["file_path", "record_count", "upper_bounds"]) as reader:
            files = list(reader)
        self.assertEqual(long_bounds({1: 9}), files[0].upper_bounds)

    def test_row_filter_with_selected_columns_reads_stats(self):
        path = self._default_manifest()
        reader = self._reader(path).select(["file_path"]).filter_rows(Expressions.less_than("id", 5))
        with reader:
            files = list(reader)
        self.assertEqual(["a-1.parquet"], [f.file_path for f in files])
        # stats were only read for filtering
        self.assertIsNone(files[0].value_counts)

    @parameterized.expand([
        (None, False),
        (["*"], False),
        (["file_path"], True),
        (["file_path", "record_count"], True),
        (["file_path", "record_count", "lower_bounds"], False),
        (["value_counts"], False),
        (["*", "file_path"], False),
    ])
    def test_drop_stats(self, columns, expected):
        self.assertEqual(expected, ManifestReader.drop_stats(columns))

    def test_with_stats_columns(self):
        self.assertEqual(["*"], ManifestReader.with_stats_columns(["*"]))
        columns = ManifestReader.with_stats_columns(["file_path"])
        self.assertEqual("file_path", columns[0])
        self.assertTrue(ManifestReader.STATS_COLUMNS.issubset(columns))

    def test_require_stats_projection(self):
        row_filter = Expressions.equal("id", 1)
        self.assertTrue(ManifestReader.require_stats_projection(row_filter, ["file_path"]))
        self.assertFalse(ManifestReader.require_stats_projection(Expressions.always_true(), ["file_path"]))
        self.assertFalse(ManifestReader.require_stats_projection(row_filter, None))
        self.assertFalse(ManifestReader.require_stats_projection(row_filter, ["*"]))
        self.assertFalse(ManifestReader.require_stats_projection(
            row_filter, list(ManifestReader.STATS_COLUMNS)))

    def test_seeded_row_ids(self):
        path = self._write([
            new_entry(self._file("f1.parquet", 10, "a", 0, 9)),
            new_entry(self._file("f2.parquet", 5, "a", 0, 4)),
            new_entry(self._file("f3.parquet", 8, "a", 0, 7, first_row_id=500)),
            new_entry(self._file("f4.parquet", 30, "a", 0, 29), ManifestEntryStatus.DELETED),
            new_entry(self._file("f5.parquet", 20, "b", 0, 19)),
        ])
        with self._reader(path, first_row_id=100) as reader:
            first_row_ids = [f.first_row_id for f in reader]
        self.assertEqual([100, 110, 500, 115], first_row_ids)

        with self._reader(path, first_row_id=100) as reader:
            by_path = {e.file.file_path: e.file.first_row_id for e in reader.entries()}
        self.assertIsNone(by_path["f4.parquet"])

    def test_seeded_row_ids_are_stable_across_passes(self):
        path = self._write([
            new_entry(self._file("f1.parquet", 10, "a", 0, 9)),
            new_entry(self._file("f2.parquet", 5, "b", 0, 4)),
            new_entry(self._file("f3.parquet", 20, "c", 0, 19)),
        ])
        with self._reader(path, first_row_id=0) as reader:
            first_pass = [f.first_row_id for f in reader]
            second_pass = [f.first_row_id for f in reader]
        self.assertEqual([0, 10, 15], first_pass)
        self.assertEqual(first_pass, second_pass)

    def test_row_ids_assigned_before_filtering(self):
        path = self._write([
            new_entry(self._file("f1.parquet", 10, "a", 0, 9)),
            new_entry(self._file("f2.parquet", 5, "b", 0, 4)),
            new_entry(self._file("f3.parquet", 20, "c", 0, 19)),
        ])
        with self._reader(path, first_row_id=100).filter_partitions(Expressions.equal("category", "c")) as reader:
            self.assertEqual([115], [f.first_row_id for f in reader])

    def test_unseeded_reader_clears_row_ids(self):
        path = self._write([new_entry(self._file("f1.parquet", 10, "a", 0, 9, first_row_id=42))])
        with self._reader(path) as reader:
            files = list(reader)
        self.assertIsNone(files[0].first_row_id)

    def test_row_id_seed_on_delete_manifest(self):
        path = self._default_manifest()
        with self.assertRaises(ValueError) as e:
            self._reader(path, first_row_id=5, content=ManifestContent.DELETES)
        self.assertEqual("First row ID is not valid for delete manifests", str(e.exception))

    def test_delete_manifest(self):
        path = self._write([
            new_entry(new_delete_file(self.spec, "d1.parquet", 3, ["a"], referenced_data_file="a-1.parquet")),
            new_entry(new_delete_file(self.spec, "d2.parquet", 4, ["b"])),
        ], content=ManifestContent.DELETES)
        metrics = ScanMetrics.of()
        reader = self._reader(path, content=ManifestContent.DELETES) \
            .filter_partitions(Expressions.equal("category", "a")) \
            .scan_metrics(metrics)
        with reader:
            self.assertTrue(reader.is_delete_manifest_reader())
            files = list(reader)
        self.assertEqual(["d1.parquet"], [f.file_path for f in files])
        self.assertTrue(files[0].is_delete_file())
        self.assertEqual("a-1.parquet", files[0].referenced_data_file)
        self.assertIsNone(files[0].first_row_id)
        self.assertEqual(1, metrics.skipped_delete_files.value())
        self.assertEqual(0, metrics.skipped_data_files.value())

    def test_unknown_manifest_extension(self):
        path = self._write([new_entry(self._file("f1.parquet", 10, "a", 0, 9))], name="manifest.bin")
        reader = self._reader(path)
        with self.assertRaises(ValueError) as e:
            list(reader)
        self.assertIn("Unable to determine format of manifest", str(e.exception))
        self.assertIn("manifest.bin", str(e.exception))

    def test_spec_read_from_header(self):
        spec = PartitionSpec(self.table_schema, 3, [PartitionField(3, 1000, "category", Identity())])
        path = write_manifest(self.file_io, os.path.join(self.tempdir, "m.avro"), spec,
                              [new_entry(new_data_file(spec, "f1.parquet", 10, ["a"]))])
        reader = ManifestReader(self.file_io.new_input_file(path), 3, None, InheritableMetadataFactory.empty())
        with reader:
            self.assertEqual(3, reader.spec.spec_id)
            self.assertEqual(["category"], [f.name for f in reader.spec.fields])
            self.assertEqual(self.table_schema, reader.spec.schema)
            files = list(reader)
        self.assertEqual(3, files[0].spec_id)

    def test_missing_spec_in_registry(self):
        path = self._default_manifest()
        with self.assertRaises(ValueError):
            self._reader(path, specs_by_id={7: self.spec})

    def test_case_insensitive_filters_and_columns(self):
        path = self._default_manifest()
        reader = self._reader(path) \
            .case_sensitive(False) \
            .select(["FILE_PATH", "Record_Count"]) \
            .filter_rows(Expressions.greater_or_equal("ID", 200))
        with reader:
            files = list(reader)
        self.assertEqual(["c-1.parquet"], [f.file_path for f in files])
        self.assertEqual(20, files[0].record_count)

    def test_case_sensitive_filter_rejects_unknown_column(self):
        path = self._default_manifest()
        with self._reader(path).filter_rows(Expressions.equal("ID", 1)) as reader:
            with self.assertRaises(ValueError):
                list(reader)

    def test_yielded_files_are_copies(self):
        path = self._default_manifest()
        with self._reader(path) as reader:
            files = list(reader)
            files[0].value_counts[1] = -1
            again = list(reader)
        self.assertIsNot(files[0], files[1])
        self.assertIsNot(files[0].partition, files[1].partition)
        self.assertEqual(["a"], files[0].partition.values)
        self.assertEqual({1: 10, 3: 10}, again[0].value_counts)

    def test_configuration_is_frozen_after_reading(self):
        path = self._default_manifest()
        with self._reader(path) as reader:
            list(reader)
            with self.assertRaises(ManifestReaderStateError):
                reader.filter_rows(Expressions.equal("id", 1))

    def test_close_is_idempotent_and_stops_reading(self):
        path = self._default_manifest()
        reader = self._reader(path)
        files = iter(reader)
        self.assertEqual("a-1.parquet", next(files).file_path)
        reader.close()
        reader.close()
        self.assertTrue(reader.is_closed())
        self.assertEqual([], list(files))
        self.assertEqual([], list(reader))

    def _track_avro_reads(self, leading_null=False):
        built = []
        InternalData.register(
            FileFormat.AVRO, lambda input_file: _TrackingReadBuilder(input_file, built, leading_null))
        self.addCleanup(InternalData.register, FileFormat.AVRO, AvroReadBuilder)
        return built

    def test_null_entry_is_forwarded_unfiltered_and_dropped_when_filtered(self):
        path = self._default_manifest()
        self._track_avro_reads(leading_null=True)

        with self._reader(path) as reader:
            paths = [None if entry is None else entry.file.file_path for entry in reader.entries()]
        self.assertEqual([None, "a-1.parquet", "b-1.parquet", "b-2.parquet", "c-1.parquet", "c-2.parquet"], paths)

        metrics = ScanMetrics.of()
        reader = self._reader(path).filter_rows(Expressions.greater_than("id", -1)).scan_metrics(metrics)
        with reader:
            paths = [None if entry is None else entry.file.file_path for entry in reader.entries()]
        self.assertEqual(["a-1.parquet", "b-1.parquet", "b-2.parquet", "c-1.parquet", "c-2.parquet"], paths)
        self.assertEqual(1, metrics.skipped_data_files.value())

    def test_live_iteration_skips_null_entry(self):
        path = self._default_manifest()
        self._track_avro_reads(leading_null=True)
        with self._reader(path) as reader:
            self.assertEqual(["a-1.parquet", "b-1.parquet", "c-1.parquet"], [f.file_path for f in reader])

    def test_each_pass_closes_its_decoder(self):
        path = self._default_manifest()
        built = self._track_avro_reads()
        reader = self._reader(path)
        for _ in range(3):
            self.assertEqual(3, len(list(reader)))
        self.assertEqual(3, len(built))
        self.assertTrue(all(iterable.closed for iterable in built))
        self.assertFalse(reader.is_closed())
        reader.close()

    def test_empty_inheritable_metadata_requires_snapshot_ids(self):
        path = self._write([new_entry(self._file("f1.parquet", 10, "a", 0, 9), snapshot_id=None)])
        with self._reader(path) as reader:
            with self.assertRaises(ValueError):
                list(reader)


class ManifestFilesTest(unittest.TestCase):

    def setUp(self):
        self.tempdir = tempfile.mkdtemp()
        self.file_io = FileIO(self.tempdir, {})
        schema = Schema([
            NestedField.required_field(1, "id", Types.LONG),
            NestedField.optional_field(2, "category", Types.STRING),
        ])
        self.spec = PartitionSpec(schema, 0, [PartitionField(2, 1000, "category", Identity())])

    def tearDown(self):
        shutil.rmtree(self.tempdir, ignore_errors=True)

    def test_read_inherits_manifest_metadata(self):
        path = write_manifest(self.file_io, os.path.join(self.tempdir, "m.avro"), self.spec, [
            new_entry(new_data_file(self.spec, "f1.parquet", 10, ["a"]), snapshot_id=None, sequence_number=None),
            new_entry(new_data_file(self.spec, "f2.parquet", 5, ["a"]), ManifestEntryStatus.EXISTING,
                      snapshot_id=3, sequence_number=2),
        ])
        manifest = ManifestFile(path, os.path.getsize(path), 0, ManifestContent.DATA,
                                sequence_number=5, min_sequence_number=2, added_snapshot_id=77, first_row_id=1000)
        with ManifestFiles.read(manifest, self.file_io, {0: self.spec}) as reader:
            entries = [entry.copy() for entry in reader.entries()]

        added, existing = entries
        self.assertEqual(77, added.snapshot_id)
        self.assertEqual(5, added.data_sequence_number)
        self.assertEqual(5, added.file.file_sequence_number)
        self.assertEqual(path, added.file.manifest_location)
        self.assertEqual(1000, added.file.first_row_id)
        self.assertEqual(3, existing.snapshot_id)
        self.assertEqual(2, existing.data_sequence_number)
        self.assertEqual(1010, existing.file.first_row_id)

    def test_read_requires_snapshot_id(self):
        manifest = ManifestFile(os.path.join(self.tempdir, "m.avro"), 0, 0)
        with self.assertRaises(ValueError):
            ManifestFiles.read(manifest, self.file_io, {0: self.spec})

    def test_manifest_content_must_match(self):
        manifest = ManifestFile(os.path.join(self.tempdir, "m.avro"), 0, 0, ManifestContent.DELETES,
                                added_snapshot_id=1)
        with self.assertRaises(ValueError):
            ManifestFiles.read(manifest, self.file_io, {0: self.spec})

    def test_read_delete_manifest(self):
        path = write_manifest(self.file_io, os.path.join(self.tempdir, "d.avro"), self.spec, [
            new_entry(new_delete_file(self.spec, "d1.parquet", 3, ["a"]), snapshot_id=None, sequence_number=None),
        ], content=ManifestContent.DELETES)
        manifest = ManifestFile(path, os.path.getsize(path), 0, ManifestContent.DELETES,
                                sequence_number=4, added_snapshot_id=9)
        with ManifestFiles.read_delete_manifest(manifest, self.file_io) as reader:
            files = list(reader)
        self.assertEqual(1, len(files))
        self.assertEqual(4, files[0].data_sequence_number)


if __name__ == '__main__':
    unittest.main()
