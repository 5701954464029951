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

import struct
import uuid
from datetime import date, datetime, time, timezone
from decimal import Decimal
from typing import Any, Optional

from pyicemanifest.schema.types import PrimitiveType

EPOCH_DATE = date(1970, 1, 1)
EPOCH_TIMESTAMP = datetime(1970, 1, 1)
EPOCH_TIMESTAMPTZ = datetime(1970, 1, 1, tzinfo=timezone.utc)

_INT_TYPES = ('int', 'date')
_LONG_TYPES = ('long', 'time', 'timestamp', 'timestamptz', 'timestamp_ns', 'timestamptz_ns')


class Conversions:
    """
    Single-value binary serialization used for column lower and upper bounds.

    Integers and floating point values are little-endian, strings are UTF-8, UUIDs are
    16 big-endian bytes and decimals are the unscaled value as big-endian two's complement.
    """

    @classmethod
    def from_bytes(cls, field_type: PrimitiveType, data: Optional[bytes]) -> Any:
        if data is None:
            return None
        type_id = field_type.type_id

        if type_id == 'boolean':
            return data[0] != 0
        elif type_id in _INT_TYPES:
            return struct.unpack('<i', data[:4])[0]
        elif type_id in _LONG_TYPES:
            if len(data) == 4:
                # bound written before the column was promoted from int
                return struct.unpack('<i', data)[0]
            return struct.unpack('<q', data[:8])[0]
        elif type_id == 'float':
            return struct.unpack('<f', data[:4])[0]
        elif type_id == 'double':
            if len(data) == 4:
                return struct.unpack('<f', data)[0]
            return struct.unpack('<d', data[:8])[0]
        elif type_id == 'string':
            return bytes(data).decode('utf-8')
        elif type_id == 'uuid':
            return uuid.UUID(bytes=bytes(data))
        elif type_id in ('fixed', 'binary'):
            return bytes(data)
        elif type_id == 'decimal':
            unscaled = int.from_bytes(data, byteorder='big', signed=True)
            return Decimal(unscaled).scaleb(-field_type.scale)
        raise ValueError(f"Cannot deserialize bound of type {field_type}")

    @classmethod
    def to_bytes(cls, field_type: PrimitiveType, value: Any) -> Optional[bytes]:
        if value is None:
            return None
        value = cls.to_internal(field_type, value)
        type_id = field_type.type_id

        if type_id == 'boolean':
            return b'\x01' if value else b'\x00'
        elif type_id in _INT_TYPES:
            return struct.pack('<i', value)
        elif type_id in _LONG_TYPES:
            return struct.pack('<q', value)
        elif type_id == 'float':
            return struct.pack('<f', value)
        elif type_id == 'double':
            return struct.pack('<d', value)
        elif type_id == 'string':
            return value.encode('utf-8')
        elif type_id == 'uuid':
            return value.bytes
        elif type_id in ('fixed', 'binary'):
            return bytes(value)
        elif type_id == 'decimal':
            unscaled = int(value.scaleb(field_type.scale))
            bits = (~unscaled).bit_length() if unscaled < 0 else unscaled.bit_length()
            length = bits // 8 + 1
            return unscaled.to_bytes(length, byteorder='big', signed=True)
        raise ValueError(f"Cannot serialize bound of type {field_type}")

    @classmethod
    def to_internal(cls, field_type: PrimitiveType, value: Any) -> Any:
        """Convert a user-facing literal to the representation stored in manifests."""
        if value is None:
            return None
        type_id = field_type.type_id

        if type_id == 'date' and isinstance(value, date) and not isinstance(value, datetime):
            return (value - EPOCH_DATE).days
        elif type_id in ('timestamp', 'timestamptz') and isinstance(value, datetime):
            if value.tzinfo is not None:
                delta = value - EPOCH_TIMESTAMPTZ
            else:
                delta = value - EPOCH_TIMESTAMP
            return (delta.days * 86_400 + delta.seconds) * 1_000_000 + delta.microseconds
        elif type_id == 'time' and isinstance(value, time):
            return ((value.hour * 60 + value.minute) * 60 + value.second) * 1_000_000 + value.microsecond
        elif type_id == 'uuid' and isinstance(value, str):
            return uuid.UUID(value)
        elif type_id == 'uuid' and isinstance(value, (bytes, bytearray)):
            return uuid.UUID(bytes=bytes(value))
        elif type_id == 'decimal' and not isinstance(value, Decimal):
            return Decimal(str(value)).quantize(Decimal(1).scaleb(-field_type.scale))
        elif type_id in ('float', 'double') and isinstance(value, int) and not isinstance(value, bool):
            return float(value)
        return value
