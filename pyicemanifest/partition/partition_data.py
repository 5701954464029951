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

from typing import Any, List, Optional

from pyicemanifest.schema.types import StructType


class PartitionData:
    """A partition tuple: one value per partition field, in partition-type order."""

    def __init__(self, partition_type: StructType, values: Optional[List[Any]] = None):
        self.partition_type = partition_type
        if values is None:
            values = [None] * len(partition_type)
        elif len(values) != len(partition_type):
            raise ValueError(
                f"Expected {len(partition_type)} partition values but got {len(values)}")
        self.values = list(values)

    def get(self, pos: int) -> Any:
        if pos < 0 or pos >= len(self.values):
            raise IndexError(f"Position {pos} is out of bounds for partition arity {len(self.values)}")
        return self.values[pos]

    def set(self, pos: int, value: Any):
        self.values[pos] = value

    def get_by_name(self, name: str) -> Any:
        field = self.partition_type.field_by_name(name)
        if field is None:
            raise KeyError(name)
        return self.values[self.partition_type.index_of(field.id)]

    def copy(self) -> 'PartitionData':
        return PartitionData(self.partition_type, list(self.values))

    def to_dict(self):
        return {field.name: self.values[i] for i, field in enumerate(self.partition_type.fields)}

    def __len__(self) -> int:
        return len(self.values)

    def __eq__(self, other) -> bool:
        if isinstance(other, PartitionData):
            return self.values == other.values
        if isinstance(other, (tuple, list)):
            return self.values == list(other)
        return False

    def __hash__(self) -> int:
        return hash(tuple(self.values))

    def __str__(self):
        field_strs = [f"{field.name}={value!r}" for field, value in zip(self.partition_type.fields, self.values)]
        return f"PartitionData({', '.join(field_strs)})"

    __repr__ = __str__
