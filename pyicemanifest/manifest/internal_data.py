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
from typing import Callable, Dict, Optional

from pyicemanifest.common.input_file import InputFile
from pyicemanifest.manifest.avro_iterable import AvroIterable
from pyicemanifest.manifest.file_format import FileFormat
from pyicemanifest.manifest.manifest_entry_decoder import (FileFactory,
                                                           ManifestEntryDecoder,
                                                           PartitionFactory)
from pyicemanifest.manifest.schema import data_file_fields
from pyicemanifest.manifest.schema.manifest_entry import DATA_FILE_ID
from pyicemanifest.schema.types import StructType


class ReadBuilder(ABC):
    """Collects the read options for one file and builds its row iterable."""

    def __init__(self, input_file: InputFile):
        self.input_file = input_file
        self._projection: Optional[StructType] = None
        self._file_factory: Optional[FileFactory] = None
        self._partition_factory: Optional[PartitionFactory] = None
        self._reuse_containers = False

    def project(self, projection: StructType) -> 'ReadBuilder':
        self._projection = projection
        return self

    def set_custom_type(self, field_id: int, factory: Callable) -> 'ReadBuilder':
        if field_id == DATA_FILE_ID:
            self._file_factory = factory
        elif field_id == data_file_fields.PARTITION_ID:
            self._partition_factory = factory
        else:
            raise ValueError(f"No custom type binding for field id {field_id}")
        return self

    def reuse_containers(self, reuse: bool = True) -> 'ReadBuilder':
        self._reuse_containers = reuse
        return self

    @abstractmethod
    def build(self):
        pass


class AvroReadBuilder(ReadBuilder):

    def build(self) -> AvroIterable:
        if self._projection is None:
            raise ValueError(f"A read projection is required for {self.input_file.location()}")
        decoder = None
        if self._projection.field(DATA_FILE_ID) is not None:
            decoder = ManifestEntryDecoder(self._projection, self._file_factory, self._partition_factory,
                                           self._reuse_containers)
        return AvroIterable(self.input_file, self._projection, decoder, self._reuse_containers)


class InternalData:
    """Registry of readers for the formats metadata files can be stored in."""

    _READERS: Dict[FileFormat, Callable[[InputFile], ReadBuilder]] = {
        FileFormat.AVRO: AvroReadBuilder,
    }

    @classmethod
    def register(cls, file_format: FileFormat, builder_factory: Callable[[InputFile], ReadBuilder]):
        cls._READERS[file_format] = builder_factory

    @classmethod
    def read(cls, file_format: FileFormat, input_file: InputFile) -> ReadBuilder:
        builder_factory = cls._READERS.get(file_format)
        if builder_factory is None:
            raise ValueError(f"Cannot read {file_format.name.lower()} file: {input_file.location()}")
        return builder_factory(input_file)
