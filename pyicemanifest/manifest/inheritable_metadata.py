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

from abc import ABC, abstractmethod
from typing import Optional

from pyicemanifest.manifest.schema.manifest_entry import (ManifestEntry,
                                                          ManifestEntryStatus)
from pyicemanifest.manifest.schema.manifest_file import ManifestFile


class InheritableMetadata(ABC):
    """Fills in entry fields that a manifest leaves to be inherited from its manifest list entry."""

    @abstractmethod
    def apply(self, entry: ManifestEntry) -> ManifestEntry:
        pass


class BaseInheritableMetadata(InheritableMetadata):

    def __init__(self, spec_id: int, snapshot_id: int, sequence_number: int, manifest_location: str):
        self.spec_id = spec_id
        self.snapshot_id = snapshot_id
        self.sequence_number = sequence_number
        self.manifest_location = manifest_location

    def apply(self, entry: ManifestEntry) -> ManifestEntry:
        if entry.snapshot_id is None:
            entry.snapshot_id = self.snapshot_id

        # in v1 tables the data sequence number is not persisted and can be safely
        # defaulted to 0; in v2 tables it is inherited only for added entries
        inherit_sequence_number = self.sequence_number == 0 or entry.status == ManifestEntryStatus.ADDED
        if entry.data_sequence_number is None and inherit_sequence_number:
            entry.data_sequence_number = self.sequence_number
        if entry.file_sequence_number is None and inherit_sequence_number:
            entry.file_sequence_number = self.sequence_number

        file = entry.file
        file.spec_id = self.spec_id
        file.data_sequence_number = entry.data_sequence_number
        file.file_sequence_number = entry.file_sequence_number
        file.manifest_location = self.manifest_location
        return entry


class EmptyInheritableMetadata(InheritableMetadata):

    def apply(self, entry: ManifestEntry) -> ManifestEntry:
        if entry.snapshot_id is None:
            raise ValueError(
                "Entries must have explicit snapshot ids if inherited metadata is empty")
        entry.file.data_sequence_number = entry.data_sequence_number
        entry.file.file_sequence_number = entry.file_sequence_number
        return entry


class CopyInheritableMetadata(InheritableMetadata):

    def __init__(self, snapshot_id: int):
        self.snapshot_id = snapshot_id

    def apply(self, entry: ManifestEntry) -> ManifestEntry:
        entry.snapshot_id = self.snapshot_id
        return entry


_EMPTY = EmptyInheritableMetadata()


class InheritableMetadataFactory:

    @staticmethod
    def empty() -> InheritableMetadata:
        return _EMPTY

    @staticmethod
    def from_manifest(manifest: ManifestFile) -> InheritableMetadata:
        snapshot_id: Optional[int] = manifest.snapshot_id()
        if snapshot_id is None:
            raise ValueError(
                f"Cannot read from ManifestFile with null (unassigned) snapshot ID: {manifest.manifest_path}")
        return BaseInheritableMetadata(
            manifest.partition_spec_id, snapshot_id, manifest.sequence_number, manifest.manifest_path)

    @staticmethod
    def for_copy(snapshot_id: int) -> InheritableMetadata:
        return CopyInheritableMetadata(snapshot_id)
