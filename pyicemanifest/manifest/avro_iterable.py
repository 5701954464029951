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
from io import BytesIO
from typing import Any, Callable, Dict, Iterator, List, Optional

import fastavro

from pyicemanifest.common.exceptions import RuntimeIOException
from pyicemanifest.common.input_file import InputFile
from pyicemanifest.manifest.schema.data_file_fields import is_metadata_column
from pyicemanifest.schema.avro_schema_util import convert_struct
from pyicemanifest.schema.types import NestedField, StructType

logger = logging.getLogger(__name__)

RecordMapper = Callable[[Dict[str, Any], int], Any]

_DECODE_ERRORS = (OSError, EOFError, ValueError)


class AvroIterable:
    """
    Lazily decodes the rows of one Avro file against a projected read schema.

    Each iteration opens the file again. Metadata columns in the projection are not
    stored in the file; they are filled from the row ordinal by the record mapper.
    Once closed, every open iteration stops before decoding the next row.
    """

    def __init__(self, input_file: InputFile, projection: StructType,
                 record_mapper: Optional[RecordMapper] = None,
                 reuse_containers: bool = False, record_name: str = "manifest_entry"):
        self.input_file = input_file
        self.projection = projection
        self.record_mapper = record_mapper
        self.reuse_containers = reuse_containers
        self.record_name = record_name
        self._closed = False
        self._open_streams: List[Any] = []
        self._metadata: Optional[Dict[str, str]] = None

    def read_schema(self) -> Dict[str, Any]:
        return convert_struct(_stored_columns(self.projection), self.record_name)

    def metadata(self) -> Dict[str, str]:
        """The key/value metadata from the file header, read without decoding any row."""
        if self._metadata is None:
            buffer = self._open()
            try:
                reader = fastavro.reader(buffer)
                self._metadata = {key: _decode_meta(value) for key, value in reader.metadata.items()}
            except _DECODE_ERRORS as e:
                raise RuntimeIOException(f"Failed to read header of {self.input_file.location()}", e) from e
            finally:
                self._release(buffer)
        return self._metadata

    def __iter__(self) -> Iterator[Any]:
        if self._closed:
            return
        buffer = self._open()
        try:
            try:
                records = fastavro.reader(buffer, reader_schema=self.read_schema())
            except _DECODE_ERRORS as e:
                raise RuntimeIOException(f"Failed to open {self.input_file.location()}", e) from e

            pos = 0
            while not self._closed:
                try:
                    record = next(records)
                except StopIteration:
                    return
                except _DECODE_ERRORS as e:
                    raise RuntimeIOException(
                        f"Failed to decode row {pos} of {self.input_file.location()}", e) from e
                yield self.record_mapper(record, pos) if self.record_mapper is not None else record
                pos += 1
        finally:
            self._release(buffer)

    def _open(self) -> BytesIO:
        with self.input_file.new_stream() as input_stream:
            try:
                buffer = BytesIO(input_stream.read())
            except OSError as e:
                raise RuntimeIOException(f"Failed to read {self.input_file.location()}", e) from e
        self._open_streams.append(buffer)
        return buffer

    def _release(self, buffer: BytesIO):
        if buffer in self._open_streams:
            self._open_streams.remove(buffer)
        buffer.close()

    def close(self):
        if self._closed:
            return
        self._closed = True
        for buffer in self._open_streams:
            buffer.close()
        self._open_streams.clear()
        logger.debug("Closed Avro reader for %s", self.input_file.location())

    @property
    def closed(self) -> bool:
        return self._closed


def _stored_columns(struct: StructType) -> StructType:
    fields = []
    for field in struct.fields:
        if is_metadata_column(field.id):
            continue
        if isinstance(field.type, StructType):
            field = NestedField(field.id, field.name, _stored_columns(field.type), field.required, field.doc)
        fields.append(field)
    return StructType(fields)


def _decode_meta(value) -> str:
    if isinstance(value, bytes):
        return value.decode('utf-8')
    return value

