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


class ManifestContent(IntEnum):
    DATA = 0
    DELETES = 1


@dataclass
class ManifestFile:
    """An entry of a manifest list describing one manifest file."""
    manifest_path: str
    manifest_length: int
    partition_spec_id: int
    content: ManifestContent = ManifestContent.DATA
    sequence_number: int = 0
    min_sequence_number: int = 0
    added_snapshot_id: Optional[int] = None
    added_files_count: Optional[int] = None
    existing_files_count: Optional[int] = None
    deleted_files_count: Optional[int] = None
    added_rows_count: Optional[int] = None
    existing_rows_count: Optional[int] = None
    deleted_rows_count: Optional[int] = None
    key_metadata: Optional[bytes] = None
    first_row_id: Optional[int] = None

    def snapshot_id(self) -> Optional[int]:
        return self.added_snapshot_id

    def has_added_files(self) -> bool:
        return self.added_files_count is None or self.added_files_count > 0

    def has_deleted_files(self) -> bool:
        return self.deleted_files_count is None or self.deleted_files_count > 0
