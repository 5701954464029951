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
from typing import Optional

from pyicemanifest.manifest.schema.content_file import ContentFile
from pyicemanifest.schema.types import NestedField, StructType, Types

DATA_FILE_ID = 2


class ManifestEntryStatus(IntEnum):
    EXISTING = 0
    ADDED = 1
    DELETED = 2


STATUS = NestedField.required_field(0, "status", Types.INT)
SNAPSHOT_ID = NestedField.optional_field(1, "snapshot_id", Types.LONG)
SEQUENCE_NUMBER = NestedField.optional_field(3, "sequence_number", Types.LONG)
FILE_SEQUENCE_NUMBER = NestedField.optional_field(4, "file_sequence_number", Types.LONG)


@dataclass
class ManifestEntry:
    status: ManifestEntryStatus
    snapshot_id: Optional[int]
    data_sequence_number: Optional[int]
    file_sequence_number: Optional[int]
    file: ContentFile

    def is_live(self) -> bool:
        return self.status != ManifestEntryStatus.DELETED

    def copy(self, with_stats: bool = True) -> 'ManifestEntry':
        return ManifestEntry(
            status=self.status,
            snapshot_id=self.snapshot_id,
            data_sequence_number=self.data_sequence_number,
            file_sequence_number=self.file_sequence_number,
            file=self.file.copy(with_stats))

    def copy_without_stats(self) -> 'ManifestEntry':
        return self.copy(with_stats=False)


def wrap_file_schema(file_type: StructType) -> StructType:
    """The manifest entry struct around a (possibly projected) data file struct."""
    return StructType([
        STATUS,
        SNAPSHOT_ID,
        SEQUENCE_NUMBER,
        FILE_SEQUENCE_NUMBER,
        NestedField.required_field(DATA_FILE_ID, "data_file", file_type),
    ])
