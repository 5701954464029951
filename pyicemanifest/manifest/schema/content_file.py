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

from dataclasses import dataclass
from enum import IntEnum
from typing import Dict, List, Optional, Union

from pyicemanifest.partition.partition_data import PartitionData


class FileContent(IntEnum):
    DATA = 0
    POSITION_DELETES = 1
    EQUALITY_DELETES = 2


@dataclass
class DataFilePayload:
    first_row_id: Optional[int] = None


@dataclass
class DeleteFilePayload:
    equality_ids: Optional[List[int]] = None
    referenced_data_file: Optional[str] = None
    content_offset: Optional[int] = None
    content_size_in_bytes: Optional[int] = None


@dataclass
class ContentFile:
    """
    A data or delete file listed in a manifest.

    Fields shared by both kinds live on the file itself; ``payload`` holds the fields of
    one kind only and is selected from ``content``.
    """
    content: FileContent
    file_path: Optional[str] = None
    file_format: Optional[str] = None
    partition: Optional[PartitionData] = None
    record_count: Optional[int] = None
    file_size_in_bytes: Optional[int] = None
    spec_id: Optional[int] = None
    column_sizes: Optional[Dict[int, int]] = None
    value_counts: Optional[Dict[int, int]] = None
    null_value_counts: Optional[Dict[int, int]] = None
    nan_value_counts: Optional[Dict[int, int]] = None
    lower_bounds: Optional[Dict[int, bytes]] = None
    upper_bounds: Optional[Dict[int, bytes]] = None
    key_metadata: Optional[bytes] = None
    split_offsets: Optional[List[int]] = None
    sort_order_id: Optional[int] = None
    payload: Union[DataFilePayload, DeleteFilePayload, None] = None

    # not schema fields, filled while reading a manifest
    pos: Optional[int] = None
    data_sequence_number: Optional[int] = None
    file_sequence_number: Optional[int] = None
    manifest_location: Optional[str] = None

    def __post_init__(self):
        self.content = FileContent(self.content)
        if self.payload is None:
            self.payload = ContentFile.new_payload(self.content)

    @staticmethod
    def new_payload(content: FileContent) -> Union[DataFilePayload, DeleteFilePayload]:
        if content == FileContent.DATA:
            return DataFilePayload()
        return DeleteFilePayload()

    def is_data_file(self) -> bool:
        return self.content == FileContent.DATA

    def is_delete_file(self) -> bool:
        return not self.is_data_file()

    @property
    def first_row_id(self) -> Optional[int]:
        if isinstance(self.payload, DataFilePayload):
            return self.payload.first_row_id
        return None

    def set_first_row_id(self, first_row_id: Optional[int]):
        if not isinstance(self.payload, DataFilePayload):
            if first_row_id is None:
                return
            raise ValueError(f"Delete files do not carry a first row id: {self.file_path}")
        self.payload.first_row_id = first_row_id

    @property
    def equality_ids(self) -> Optional[List[int]]:
        return self.payload.equality_ids if isinstance(self.payload, DeleteFilePayload) else None

    @property
    def referenced_data_file(self) -> Optional[str]:
        return self.payload.referenced_data_file if isinstance(self.payload, DeleteFilePayload) else None

    @property
    def content_offset(self) -> Optional[int]:
        return self.payload.content_offset if isinstance(self.payload, DeleteFilePayload) else None

    @property
    def content_size_in_bytes(self) -> Optional[int]:
        return self.payload.content_size_in_bytes if isinstance(self.payload, DeleteFilePayload) else None

    def copy(self, with_stats: bool = True) -> 'ContentFile':
        """An independent copy; column statistics are left out when with_stats is False."""
        if isinstance(self.payload, DataFilePayload):
            payload = DataFilePayload(self.payload.first_row_id)
        else:
            payload = DeleteFilePayload(
                equality_ids=_copy_list(self.payload.equality_ids),
                referenced_data_file=self.payload.referenced_data_file,
                content_offset=self.payload.content_offset,
                content_size_in_bytes=self.payload.content_size_in_bytes)
        return ContentFile(
            content=self.content,
            file_path=self.file_path,
            file_format=self.file_format,
            partition=self.partition.copy() if self.partition is not None else None,
            record_count=self.record_count,
            file_size_in_bytes=self.file_size_in_bytes,
            spec_id=self.spec_id,
            column_sizes=_copy_map(self.column_sizes) if with_stats else None,
            value_counts=_copy_map(self.value_counts) if with_stats else None,
            null_value_counts=_copy_map(self.null_value_counts) if with_stats else None,
            nan_value_counts=_copy_map(self.nan_value_counts) if with_stats else None,
            lower_bounds=_copy_map(self.lower_bounds) if with_stats else None,
            upper_bounds=_copy_map(self.upper_bounds) if with_stats else None,
            key_metadata=self.key_metadata,
            split_offsets=_copy_list(self.split_offsets),
            sort_order_id=self.sort_order_id,
            payload=payload,
            pos=self.pos,
            data_sequence_number=self.data_sequence_number,
            file_sequence_number=self.file_sequence_number,
            manifest_location=self.manifest_location)

    def copy_without_stats(self) -> 'ContentFile':
        return self.copy(with_stats=False)


def _copy_map(values: Optional[Dict]) -> Optional[Dict]:
    return dict(values) if values is not None else None


def _copy_list(values: Optional[List]) -> Optional[List]:
    return list(values) if values is not None else None
