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

from typing import Any, Callable, Dict, Optional

from pyicemanifest.manifest.schema import data_file_fields
from pyicemanifest.manifest.schema.content_file import (ContentFile,
                                                        DataFilePayload,
                                                        DeleteFilePayload,
                                                        FileContent)
from pyicemanifest.manifest.schema.manifest_entry import (DATA_FILE_ID,
                                                          ManifestEntry,
                                                          ManifestEntryStatus)
from pyicemanifest.partition.partition_data import PartitionData
from pyicemanifest.schema.conversions import Conversions
from pyicemanifest.schema.types import PrimitiveType, StructType

FileFactory = Callable[[Optional[FileContent]], ContentFile]
PartitionFactory = Callable[[StructType], PartitionData]

_SHARED_FIELDS = ('file_path', 'file_format', 'record_count', 'file_size_in_bytes', 'spec_id',
                  'key_metadata', 'sort_order_id')
_MAP_FIELDS = ('column_sizes', 'value_counts', 'null_value_counts', 'nan_value_counts',
               'lower_bounds', 'upper_bounds')
_DELETE_FIELDS = ('referenced_data_file', 'content_offset', 'content_size_in_bytes')


def default_file_factory(content: Optional[FileContent]) -> ContentFile:
    return ContentFile(content=content if content is not None else FileContent.DATA)


def default_partition_factory(partition_type: StructType) -> PartitionData:
    return PartitionData(partition_type)


class ManifestEntryDecoder:
    """
    Maps decoded Avro records of the manifest entry struct to ManifestEntry objects.

    The file object is created by ``file_factory`` from the record's content tag and the
    partition tuple by ``partition_factory``. With container reuse, one entry, one file
    per content kind and one partition tuple are overwritten for every row, so callers
    must copy what they keep.
    """

    def __init__(self, projection: StructType, file_factory: Optional[FileFactory] = None,
                 partition_factory: Optional[PartitionFactory] = None, reuse_containers: bool = False):
        file_field = projection.field(DATA_FILE_ID)
        if file_field is None:
            raise ValueError(f"Manifest entry projection is missing data_file: {projection}")
        self.file_type: StructType = file_field.type
        partition_field = self.file_type.field(data_file_fields.PARTITION_ID)
        self.partition_type: Optional[StructType] = partition_field.type if partition_field else None
        self.has_pos = self.file_type.field(data_file_fields.ROW_POSITION.id) is not None
        self.file_factory = file_factory or default_file_factory
        self.partition_factory = partition_factory or default_partition_factory
        self.reuse_containers = reuse_containers
        self._entry: Optional[ManifestEntry] = None
        self._files: Dict[Optional[FileContent], ContentFile] = {}
        self._partition: Optional[PartitionData] = None

    def __call__(self, record: Dict[str, Any], pos: int) -> ManifestEntry:
        file = self._decode_file(record['data_file'], pos)
        status = ManifestEntryStatus(record['status'])
        if self.reuse_containers and self._entry is not None:
            entry = self._entry
            entry.status = status
            entry.snapshot_id = record.get('snapshot_id')
            entry.data_sequence_number = record.get('sequence_number')
            entry.file_sequence_number = record.get('file_sequence_number')
            entry.file = file
            return entry

        entry = ManifestEntry(
            status=status,
            snapshot_id=record.get('snapshot_id'),
            data_sequence_number=record.get('sequence_number'),
            file_sequence_number=record.get('file_sequence_number'),
            file=file)
        if self.reuse_containers:
            self._entry = entry
        return entry

    def _decode_file(self, record: Dict[str, Any], pos: int) -> ContentFile:
        content = record.get('content')
        if content is not None:
            content = FileContent(content)
        file = self._files.get(content) if self.reuse_containers else None
        if file is None:
            file = self.file_factory(content)
            if self.reuse_containers:
                self._files[content] = file

        for name in _SHARED_FIELDS:
            setattr(file, name, record.get(name))
        for name in _MAP_FIELDS:
            setattr(file, name, _decode_map(record.get(name)))
        file.split_offsets = record.get('split_offsets')
        file.partition = self._decode_partition(record.get('partition'))
        file.pos = pos if self.has_pos else None
        file.data_sequence_number = None
        file.file_sequence_number = None
        file.manifest_location = None

        if isinstance(file.payload, DataFilePayload):
            file.payload.first_row_id = record.get('first_row_id')
        elif isinstance(file.payload, DeleteFilePayload):
            file.payload.equality_ids = record.get('equality_ids')
            for name in _DELETE_FIELDS:
                setattr(file.payload, name, record.get(name))
        return file

    def _decode_partition(self, record: Optional[Dict[str, Any]]) -> Optional[PartitionData]:
        if self.partition_type is None or record is None:
            return None
        if self.reuse_containers and self._partition is not None:
            partition = self._partition
        else:
            partition = self.partition_factory(self.partition_type)
            if self.reuse_containers:
                self._partition = partition

        for index, field in enumerate(self.partition_type.fields):
            value = record.get(field.name)
            if isinstance(field.type, PrimitiveType):
                # logical types may come back as date, datetime or UUID objects
                value = Conversions.to_internal(field.type, value)
            partition.set(index, value)
        return partition


def _decode_map(value) -> Optional[Dict]:
    if value is None:
        return None
    if isinstance(value, dict):
        return value
    return {item['key']: item['value'] for item in value}
