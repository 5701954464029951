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

from typing import Optional

from pyicemanifest.manifest.schema.manifest_entry import (ManifestEntry,
                                                          ManifestEntryStatus)


class RowIdAssigner:
    """
    Back-fills first row ids of data files in manifest order.

    Seeded with the manifest's first row id, each live data file without a first row id
    gets the running counter, which then advances by the file's record count. Files
    that already carry an id are left alone and do not advance the counter. Without a
    seed, first row ids are cleared since they are only meaningful relative to one.
    A new assigner is used for every pass so repeated reads assign the same ids.
    """

    def __init__(self, first_row_id: Optional[int]):
        self.first_row_id = first_row_id
        self.next_row_id = first_row_id

    @staticmethod
    def seeded(first_row_id: int) -> 'RowIdAssigner':
        return RowIdAssigner(first_row_id)

    @staticmethod
    def unseeded() -> 'RowIdAssigner':
        return RowIdAssigner(None)

    def is_seeded(self) -> bool:
        return self.first_row_id is not None

    def __call__(self, entry: ManifestEntry) -> ManifestEntry:
        if entry is None:
            return entry
        file = entry.file
        if not file.is_data_file():
            return entry

        if self.first_row_id is None:
            file.set_first_row_id(None)
        elif entry.status != ManifestEntryStatus.DELETED and file.first_row_id is None:
            file.set_first_row_id(self.next_row_id)
            self.next_row_id += file.record_count
        return entry
