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

import re
import struct
from abc import ABC, abstractmethod
from datetime import timedelta
from decimal import Decimal
from typing import Any, Optional

from pyicemanifest.expressions.predicate import Predicate
from pyicemanifest.schema.conversions import EPOCH_DATE, EPOCH_TIMESTAMP
from pyicemanifest.schema.types import IcebergType, PrimitiveType, Types

_BUCKET = re.compile(r"bucket\[\s*(\d+)\s*\]")
_TRUNCATE = re.compile(r"truncate\[\s*(\d+)\s*\]")

MICROS_PER_HOUR = 3_600_000_000
MICROS_PER_DAY = 86_400_000_000

_UNARY = ('isNull', 'isNotNull')
_TEMPORAL_SOURCES = ('date', 'timestamp', 'timestamptz')
_INTEGRAL_SOURCES = ('int', 'long', 'date', 'time', 'timestamp', 'timestamptz')


def murmur3_32(data: bytes, seed: int = 0) -> int:
    """32-bit murmur3 (x86 variant) returning a signed int."""
    c1 = 0xcc9e2d51
    c2 = 0x1b873593
    length = len(data)
    h1 = seed & 0xFFFFFFFF
    rounded_end = length & ~0x3

    for i in range(0, rounded_end, 4):
        k1 = int.from_bytes(data[i:i + 4], byteorder='little')
        k1 = (k1 * c1) & 0xFFFFFFFF
        k1 = ((k1 << 15) | (k1 >> 17)) & 0xFFFFFFFF
        k1 = (k1 * c2) & 0xFFFFFFFF
        h1 ^= k1
        h1 = ((h1 << 13) | (h1 >> 19)) & 0xFFFFFFFF
        h1 = (h1 * 5 + 0xe6546b64) & 0xFFFFFFFF

    k1 = 0
    tail = length & 0x3
    if tail == 3:
        k1 ^= data[rounded_end + 2] << 16
    if tail >= 2:
        k1 ^= data[rounded_end + 1] << 8
    if tail >= 1:
        k1 ^= data[rounded_end]
        k1 = (k1 * c1) & 0xFFFFFFFF
        k1 = ((k1 << 15) | (k1 >> 17)) & 0xFFFFFFFF
        k1 = (k1 * c2) & 0xFFFFFFFF
        h1 ^= k1

    h1 ^= length
    h1 ^= h1 >> 16
    h1 = (h1 * 0x85ebca6b) & 0xFFFFFFFF
    h1 ^= h1 >> 13
    h1 = (h1 * 0xc2b2ae35) & 0xFFFFFFFF
    h1 ^= h1 >> 16
    return h1 - 0x100000000 if h1 & 0x80000000 else h1


class Transform(ABC):
    """
    A partition transform turns a source column value into a partition value.

    ``project`` builds the inclusive projection of a bound predicate on the source column
    into a predicate on the partition column: every row matching the source predicate
    lives in a partition matching the projection. None means the predicate cannot be
    projected and places no constraint on partitions.
    """

    @abstractmethod
    def apply(self, value: Any) -> Any:
        pass

    @abstractmethod
    def result_type(self, source_type: IcebergType) -> IcebergType:
        pass

    @abstractmethod
    def project(self, name: str, predicate: Predicate) -> Optional[Predicate]:
        pass

    def is_identity(self) -> bool:
        return False

    def is_void(self) -> bool:
        return False

    def __eq__(self, other) -> bool:
        return type(self) is type(other) and str(self) == str(other)

    def __hash__(self) -> int:
        return hash(str(self))

    def __repr__(self) -> str:
        return str(self)

    @staticmethod
    def from_string(transform: str) -> 'Transform':
        normalized = transform.strip().lower()
        if normalized == 'identity':
            return Identity()
        if normalized == 'void':
            return Void()
        if normalized in _TIME_TRANSFORMS:
            return _TIME_TRANSFORMS[normalized]()
        match = _BUCKET.fullmatch(normalized)
        if match:
            return Bucket(int(match.group(1)))
        match = _TRUNCATE.fullmatch(normalized)
        if match:
            return Truncate(int(match.group(1)))
        raise ValueError(f"Unknown partition transform: {transform}")


class Identity(Transform):

    def apply(self, value: Any) -> Any:
        return value

    def result_type(self, source_type: IcebergType) -> IcebergType:
        return source_type

    def project(self, name: str, predicate: Predicate) -> Optional[Predicate]:
        return predicate.new_field(name)

    def is_identity(self) -> bool:
        return True

    def __str__(self) -> str:
        return 'identity'


class Void(Transform):

    def apply(self, value: Any) -> Any:
        return None

    def result_type(self, source_type: IcebergType) -> IcebergType:
        return source_type

    def project(self, name: str, predicate: Predicate) -> Optional[Predicate]:
        return None

    def is_void(self) -> bool:
        return True

    def __str__(self) -> str:
        return 'void'


class Bucket(Transform):

    def __init__(self, num_buckets: int):
        if num_buckets <= 0:
            raise ValueError(f"Invalid number of buckets: {num_buckets} (must be > 0)")
        self.num_buckets = num_buckets

    def hash(self, value: Any) -> int:
        if isinstance(value, bool):
            raise ValueError("Cannot bucket boolean values")
        if isinstance(value, int):
            return murmur3_32(struct.pack('<q', value))
        if isinstance(value, str):
            return murmur3_32(value.encode('utf-8'))
        if isinstance(value, (bytes, bytearray)):
            return murmur3_32(bytes(value))
        if isinstance(value, Decimal):
            unscaled = int(value.scaleb(-value.as_tuple().exponent))
            bits = (~unscaled).bit_length() if unscaled < 0 else unscaled.bit_length()
            length = bits // 8 + 1
            return murmur3_32(unscaled.to_bytes(length, byteorder='big', signed=True))
        if hasattr(value, 'bytes'):
            return murmur3_32(value.bytes)
        raise ValueError(f"Cannot bucket value of type {type(value).__name__}")

    def apply(self, value: Any) -> Any:
        if value is None:
            return None
        return (self.hash(value) & 0x7FFFFFFF) % self.num_buckets

    def result_type(self, source_type: IcebergType) -> IcebergType:
        return Types.INT

    def project(self, name: str, predicate: Predicate) -> Optional[Predicate]:
        if predicate.method in _UNARY:
            return Predicate(predicate.method, name)
        if predicate.method == 'equal':
            return Predicate('equal', name, [self.apply(predicate.literals[0])])
        if predicate.method == 'in':
            return Predicate('in', name, sorted({self.apply(lit) for lit in predicate.literals}))
        return None

    def __str__(self) -> str:
        return f'bucket[{self.num_buckets}]'


class _OrderPreserving(Transform):
    """A monotonic transform over integral or ordered values."""

    def _adjacent(self, value: Any, step: int) -> Any:
        return value + step

    def _is_integral(self, predicate: Predicate) -> bool:
        field_type = predicate.field_type
        return isinstance(field_type, PrimitiveType) and field_type.type_id in _INTEGRAL_SOURCES

    def project(self, name: str, predicate: Predicate) -> Optional[Predicate]:
        method = predicate.method
        if method in _UNARY:
            return Predicate(method, name)
        if predicate.literals is None:
            return None

        literals = predicate.literals
        integral = self._is_integral(predicate)
        if method == 'lessThan':
            bound = self._adjacent(literals[0], -1) if integral else literals[0]
            return Predicate('lessOrEqual', name, [self.apply(bound)])
        if method == 'lessOrEqual':
            return Predicate('lessOrEqual', name, [self.apply(literals[0])])
        if method == 'greaterThan':
            bound = self._adjacent(literals[0], 1) if integral else literals[0]
            return Predicate('greaterOrEqual', name, [self.apply(bound)])
        if method == 'greaterOrEqual':
            return Predicate('greaterOrEqual', name, [self.apply(literals[0])])
        if method == 'equal':
            return Predicate('equal', name, [self.apply(literals[0])])
        if method == 'in':
            return Predicate('in', name, sorted({self.apply(lit) for lit in literals}))
        if method == 'between':
            return Predicate('between', name, [self.apply(literals[0]), self.apply(literals[1])])
        return None


class Truncate(_OrderPreserving):

    def __init__(self, width: int):
        if width <= 0:
            raise ValueError(f"Invalid truncate width: {width} (must be > 0)")
        self.width = width

    def _is_integral(self, predicate: Predicate) -> bool:
        field_type = predicate.field_type
        return isinstance(field_type, PrimitiveType) and \
            (field_type.type_id in _INTEGRAL_SOURCES or field_type.type_id == 'decimal')

    def _adjacent(self, value: Any, step: int) -> Any:
        if isinstance(value, Decimal):
            return value + Decimal(step).scaleb(value.as_tuple().exponent)
        return value + step

    def apply(self, value: Any) -> Any:
        if value is None:
            return None
        if isinstance(value, bool):
            raise ValueError("Cannot truncate boolean values")
        if isinstance(value, int):
            return value - (value % self.width)
        if isinstance(value, (str, bytes, bytearray)):
            return value[:self.width]
        if isinstance(value, Decimal):
            exponent = value.as_tuple().exponent
            unscaled = int(value.scaleb(-exponent))
            return Decimal(unscaled - (unscaled % self.width)).scaleb(exponent)
        raise ValueError(f"Cannot truncate value of type {type(value).__name__}")

    def result_type(self, source_type: IcebergType) -> IcebergType:
        return source_type

    def project(self, name: str, predicate: Predicate) -> Optional[Predicate]:
        if predicate.method == 'startsWith':
            prefix = predicate.literals[0]
            if len(prefix) < self.width:
                return Predicate('startsWith', name, [prefix])
            return Predicate('equal', name, [self.apply(prefix)])
        return super().project(name, predicate)

    def __str__(self) -> str:
        return f'truncate[{self.width}]'


class _TimeTransform(_OrderPreserving):

    def __init__(self):
        self.source_type_id = None

    def _is_integral(self, predicate: Predicate) -> bool:
        return True

    def apply(self, value: Any) -> Any:
        if value is None:
            return None
        if self.source_type_id == 'date':
            return self.from_days(value)
        return self.from_micros(value)

    def bind_source(self, source_type: IcebergType) -> '_TimeTransform':
        if not isinstance(source_type, PrimitiveType) or source_type.type_id not in _TEMPORAL_SOURCES:
            raise ValueError(f"Cannot apply {self} to source type {source_type}")
        bound = type(self)()
        bound.source_type_id = source_type.type_id
        return bound

    def project(self, name: str, predicate: Predicate) -> Optional[Predicate]:
        bound = self.bind_source(predicate.field_type) if predicate.field_type is not None else self
        return _OrderPreserving.project(bound, name, predicate)

    @abstractmethod
    def from_days(self, days: int) -> int:
        pass

    @abstractmethod
    def from_micros(self, micros: int) -> int:
        pass

    def result_type(self, source_type: IcebergType) -> IcebergType:
        return Types.INT

    def __eq__(self, other) -> bool:
        return type(self) is type(other)

    def __hash__(self) -> int:
        return hash(str(self))


class Year(_TimeTransform):

    def from_days(self, days: int) -> int:
        return (EPOCH_DATE + timedelta(days=days)).year - 1970

    def from_micros(self, micros: int) -> int:
        return (EPOCH_TIMESTAMP + timedelta(microseconds=micros)).year - 1970

    def __str__(self) -> str:
        return 'year'


class Month(_TimeTransform):

    def from_days(self, days: int) -> int:
        day = EPOCH_DATE + timedelta(days=days)
        return (day.year - 1970) * 12 + day.month - 1

    def from_micros(self, micros: int) -> int:
        ts = EPOCH_TIMESTAMP + timedelta(microseconds=micros)
        return (ts.year - 1970) * 12 + ts.month - 1

    def __str__(self) -> str:
        return 'month'


class Day(_TimeTransform):

    def from_days(self, days: int) -> int:
        return days

    def from_micros(self, micros: int) -> int:
        return micros // MICROS_PER_DAY

    def result_type(self, source_type: IcebergType) -> IcebergType:
        return Types.DATE

    def __str__(self) -> str:
        return 'day'


class Hour(_TimeTransform):

    def from_days(self, days: int) -> int:
        raise ValueError("Cannot apply hour to a date value")

    def from_micros(self, micros: int) -> int:
        return micros // MICROS_PER_HOUR

    def bind_source(self, source_type: IcebergType) -> '_TimeTransform':
        bound = super().bind_source(source_type)
        if bound.source_type_id == 'date':
            raise ValueError(f"Cannot apply hour to source type {source_type}")
        return bound

    def __str__(self) -> str:
        return 'hour'


_TIME_TRANSFORMS = {
    'year': Year,
    'month': Month,
    'day': Day,
    'hour': Hour,
}
