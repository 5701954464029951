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

import logging
from dataclasses import dataclass, field
from typing import Collection, Dict, Iterator, List, Optional, Union

from pyicemanifest.common.closeable_group import CloseableGroup
from pyicemanifest.common.exceptions import ManifestReaderStateError
from pyicemanifest.common.input_file import InputFile
from pyicemanifest.common.options.config import ManifestReadOptions
from pyicemanifest.common.options.options import Options
from pyicemanifest.expressions.evaluator import Evaluator
from pyicemanifest.expressions.expressions import Expressions
from pyicemanifest.expressions.inclusive_metrics_evaluator import \
    InclusiveMetricsEvaluator
from pyicemanifest.expressions.predicate import Predicate
from pyicemanifest.expressions.projections import Projections
from pyicemanifest.manifest.avro_iterable import AvroIterable
from pyicemanifest.manifest.file_format import FileFormat
from pyicemanifest.manifest.inheritable_metadata import InheritableMetadata
from pyicemanifest.manifest.internal_data import InternalData
from pyicemanifest.manifest.manifest_entry_decoder import \
    default_partition_factory
from pyicemanifest.manifest.row_id_assigner import RowIdAssigner
from pyicemanifest.manifest.schema import data_file_fields
from pyicemanifest.manifest.schema.content_file import ContentFile, FileContent
from pyicemanifest.manifest.schema.manifest_entry import (
    DATA_FILE_ID, STATUS, ManifestEntry, ManifestEntryStatus,
    wrap_file_schema)
from pyicemanifest.manifest.schema.manifest_file import ManifestContent
from pyicemanifest.metrics.scan_metrics import Counter, ScanMetrics
from pyicemanifest.partition.partition_set import PartitionSet
from pyicemanifest.partition.partition_spec import PartitionSpec
from pyicemanifest.schema.schema import ALL_COLUMNS, Schema
from pyicemanifest.schema.types import StructType

logger = logging.getLogger(__name__)

INITIAL_SPEC_ID = 0
STATS_COLUMNS = frozenset(data_file_fields.STATS_COLUMNS)


@dataclass
class ManifestReadConfig:
    """Reader settings collected before the first pass over a manifest."""
    columns: Optional[List[str]] = None
    file_projection: Optional[Schema] = None
    part_filter: Predicate = field(default_factory=Expressions.always_true)
    row_filter: Predicate = field(default_factory=Expressions.always_true)
    partition_set: Optional[PartitionSet] = None
    case_sensitive: bool = True
    scan_metrics: ScanMetrics = ScanMetrics.noop()

    def has_row_filter(self) -> bool:
        return not Expressions.is_always_true(self.row_filter)

    def has_partition_filter(self) -> bool:
        return not Expressions.is_always_true(self.part_filter)


@dataclass(frozen=True)
class ScanPipeline:
    """What every pass over the manifest decodes and how entries are filtered."""
    projection: Schema
    filtered: bool
    evaluator: Optional[Evaluator]
    metrics_evaluator: Optional[InclusiveMetricsEvaluator]
    partition_set: Optional[PartitionSet]
    skipped_files: Counter
    drop_stats: bool


class ManifestReader(CloseableGroup):
    """
    Reads the files listed in one manifest.

    Configure the reader with select or project, filter_partitions, filter_rows and
    case_sensitive, then iterate it for copies of the live files that might match the
    filters. The configuration is frozen by the first pass; later passes decode the
    manifest again with the same filters. Closing the reader stops every pass in progress.
    """

    ALL_COLUMNS = [ALL_COLUMNS]
    STATS_COLUMNS = STATS_COLUMNS

    def __init__(self, file: InputFile, spec_id: int, specs_by_id: Optional[Dict[int, PartitionSpec]],
                 inheritable_metadata: InheritableMetadata, content: ManifestContent = ManifestContent.DATA,
                 first_row_id: Optional[int] = None, options: Union[Options, dict, None] = None):
        super().__init__()
        if first_row_id is not None and content != ManifestContent.DATA:
            raise ValueError("First row ID is not valid for delete manifests")
        self._file = file
        self.inheritable_metadata = inheritable_metadata
        self.first_row_id = first_row_id
        self.content = content

        if not isinstance(options, Options):
            options = Options(options)
        read_options = ManifestReadOptions(options)
        self.reuse_containers = read_options.reuse_containers()

        if specs_by_id is not None:
            self._spec = specs_by_id.get(spec_id)
            if self._spec is None:
                raise ValueError(f"Cannot find partition spec {spec_id} for manifest {file.location()}")
        else:
            self._spec = self._read_partition_spec(file)

        self._file_schema = Schema(data_file_fields.get_type(self._spec.partition_type()).fields)
        self._config = ManifestReadConfig(case_sensitive=read_options.case_sensitive())
        self._pipeline: Optional[ScanPipeline] = None

    @staticmethod
    def _read_partition_spec(input_file: InputFile) -> PartitionSpec:
        metadata = ManifestReader.read_metadata(input_file)
        spec_id = INITIAL_SPEC_ID
        spec_property = metadata.get("partition-spec-id")
        if spec_property is not None:
            spec_id = int(spec_property)

        schema_json = metadata.get("schema")
        spec_json = metadata.get("partition-spec")
        if schema_json is None or spec_json is None:
            raise ValueError(f"Manifest header has no schema or partition spec: {input_file.location()}")
        schema = Schema.from_json(schema_json)
        return PartitionSpec.from_json_fields(schema, spec_id, spec_json)

    @staticmethod
    def read_metadata(input_file: InputFile) -> Dict[str, str]:
        header_reader = InternalData.read(FileFormat.AVRO, input_file) \
            .project(StructType([STATUS])) \
            .build()
        if not isinstance(header_reader, AvroIterable):
            raise RuntimeError(f"Reader does not support metadata reading: {type(header_reader).__name__}")
        try:
            metadata = header_reader.metadata()
        finally:
            header_reader.close()
        logger.debug("Read header of manifest %s: %s", input_file.location(), sorted(metadata))
        return metadata

    @property
    def file(self) -> InputFile:
        return self._file

    @property
    def spec(self) -> PartitionSpec:
        return self._spec

    @property
    def schema(self) -> Schema:
        return self._file_schema

    def is_delete_manifest_reader(self) -> bool:
        return self.content == ManifestContent.DELETES

    def _check_configurable(self):
        if self._pipeline is not None:
            raise ManifestReaderStateError("Cannot change the configuration of a manifest reader after reading")

    def select(self, columns: Collection[str]) -> 'ManifestReader':
        self._check_configurable()
        if self._config.file_projection is not None:
            raise ManifestReaderStateError("Cannot select columns using both select(columns) and project(schema)")
        self._config.columns = list(columns)
        return self

    def project(self, file_projection: Schema) -> 'ManifestReader':
        self._check_configurable()
        if self._config.columns is not None:
            raise ManifestReaderStateError("Cannot select columns using both select(columns) and project(schema)")
        self._config.file_projection = file_projection
        return self

    def filter_partitions(self, expr_or_partitions: Union[Predicate, PartitionSet]) -> 'ManifestReader':
        """AND a partition expression into the partition filter, or replace the partition set."""
        self._check_configurable()
        if isinstance(expr_or_partitions, PartitionSet):
            self._config.partition_set = expr_or_partitions
        else:
            self._config.part_filter = Expressions.and_(self._config.part_filter, expr_or_partitions)
        return self

    def filter_rows(self, expr: Predicate) -> 'ManifestReader':
        self._check_configurable()
        self._config.row_filter = Expressions.and_(self._config.row_filter, expr)
        return self

    def case_sensitive(self, case_sensitive: bool) -> 'ManifestReader':
        self._check_configurable()
        self._config.case_sensitive = case_sensitive
        return self

    def scan_metrics(self, scan_metrics: ScanMetrics) -> 'ManifestReader':
        self._check_configurable()
        self._config.scan_metrics = scan_metrics
        return self

    def _build_pipeline(self) -> ScanPipeline:
        if self._pipeline is not None:
            return self._pipeline

        config = self._config
        filtered = config.has_row_filter() or config.has_partition_filter() or config.partition_set is not None
        evaluator = None
        metrics_evaluator = None
        columns = config.columns
        if filtered:
            projected = Projections.inclusive(self._spec, config.case_sensitive).project(config.row_filter)
            evaluator = Evaluator(
                self._spec.partition_type(), Expressions.and_(projected, config.part_filter), config.case_sensitive)
            metrics_evaluator = InclusiveMetricsEvaluator(self._spec.schema, config.row_filter, config.case_sensitive)
            logger.debug("Built evaluators for manifest %s: partitions %s, rows %s",
                         self._file.location(), evaluator.expr, metrics_evaluator.expr)
            if self.require_stats_projection(config.row_filter, columns):
                columns = self.with_stats_columns(columns)

        if self.content == ManifestContent.DATA:
            skipped_files = config.scan_metrics.skipped_data_files
        else:
            skipped_files = config.scan_metrics.skipped_delete_files

        self._pipeline = ScanPipeline(
            projection=self._projection(columns),
            filtered=filtered,
            evaluator=evaluator,
            metrics_evaluator=metrics_evaluator,
            partition_set=config.partition_set,
            skipped_files=skipped_files,
            drop_stats=self.drop_stats(config.columns))
        return self._pipeline

    def _projection(self, columns: Optional[List[str]]) -> Schema:
        if columns is not None:
            if self._config.case_sensitive:
                return self._file_schema.select(columns)
            return self._file_schema.case_insensitive_select(columns)
        if self._config.file_projection is not None:
            return self._config.file_projection
        return self._file_schema

    def entries(self, only_live: bool = False) -> Iterator[ManifestEntry]:
        """All entries of the manifest that pass the filters, including deleted ones unless only_live."""
        pipeline = self._build_pipeline()
        entries = self._open(pipeline.projection)
        if only_live:
            entries = filter(self._is_live_entry, entries)
        if not pipeline.filtered:
            yield from entries
            return

        for entry in entries:
            if self._matches(pipeline, entry):
                yield entry
            else:
                pipeline.skipped_files.increment()

    def live_entries(self) -> Iterator[ManifestEntry]:
        return self.entries(only_live=True)

    @staticmethod
    def _is_live_entry(entry: Optional[ManifestEntry]) -> bool:
        return entry is not None and entry.status != ManifestEntryStatus.DELETED

    @staticmethod
    def _matches(pipeline: ScanPipeline, entry: Optional[ManifestEntry]) -> bool:
        if entry is None:
            return False
        file = entry.file
        return pipeline.evaluator.eval(file.partition) \
            and pipeline.metrics_evaluator.eval(file) \
            and (pipeline.partition_set is None or pipeline.partition_set.contains(file.spec_id, file.partition))

    def _open(self, projection: Schema) -> Iterator[ManifestEntry]:
        file_format = FileFormat.from_file_name(self._file.location())
        if file_format is None:
            raise ValueError(f"Unable to determine format of manifest: {self._file.location()}")

        fields = list(projection.as_struct().fields)
        if projection.find_field(data_file_fields.RECORD_COUNT.id) is None:
            fields.append(data_file_fields.RECORD_COUNT)
        if projection.find_field(data_file_fields.FIRST_ROW_ID.id) is None:
            fields.append(data_file_fields.FIRST_ROW_ID)
        fields.append(data_file_fields.ROW_POSITION)

        reader = InternalData.read(file_format, self._file) \
            .project(wrap_file_schema(StructType(fields))) \
            .set_custom_type(DATA_FILE_ID, self._new_file) \
            .set_custom_type(data_file_fields.PARTITION_ID, default_partition_factory) \
            .reuse_containers(self.reuse_containers) \
            .build()
        self.add_closeable(reader)
        logger.debug("Opened manifest %s with %d projected columns", self._file.location(), len(fields))

        id_assigner = RowIdAssigner(self.first_row_id)
        try:
            for entry in reader:
                if entry is None:
                    # forwarded as is, only the filtered path drops it
                    yield None
                    continue
                yield id_assigner(self._with_spec_id(self.inheritable_metadata.apply(entry)))
        finally:
            self.remove_closeable(reader)
            reader.close()

    def _new_file(self, content: Optional[FileContent]) -> ContentFile:
        if content is None:
            # content was not projected, the manifest kind decides
            content = FileContent.DATA if self.content == ManifestContent.DATA else FileContent.POSITION_DELETES
        if (content == FileContent.DATA) != (self.content == ManifestContent.DATA):
            raise ValueError(
                f"Unexpected {content.name} file in {self.content.name} manifest: {self._file.location()}")
        return ContentFile(content=content)

    def _with_spec_id(self, entry: ManifestEntry) -> ManifestEntry:
        if entry.file.spec_id is None:
            entry.file.spec_id = self._spec.spec_id
        return entry

    def __iter__(self) -> Iterator[ContentFile]:
        drop_stats = self._build_pipeline().drop_stats
        for entry in self.live_entries():
            yield entry.file.copy(with_stats=not drop_stats)

    @staticmethod
    def require_stats_projection(row_filter: Predicate, columns: Optional[Collection[str]]) -> bool:
        return not Expressions.is_always_true(row_filter) \
            and columns is not None \
            and ALL_COLUMNS not in columns \
            and not STATS_COLUMNS.issubset(columns)

    @staticmethod
    def drop_stats(columns: Optional[Collection[str]]) -> bool:
        # stats are dropped only when none of them was selected, or record_count alone
        if columns is not None and ALL_COLUMNS not in columns:
            intersection = set(columns) & STATS_COLUMNS
            return not intersection or intersection == {"record_count"}
        return False

    @staticmethod
    def with_stats_columns(columns: Collection[str]) -> List[str]:
        if ALL_COLUMNS in columns:
            return list(columns)
        return list(columns) + sorted(STATS_COLUMNS)
