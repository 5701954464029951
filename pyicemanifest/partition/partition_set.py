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

from typing import Dict, Iterable, Iterator, Set, Tuple, Union

from pyicemanifest.partition.partition_data import PartitionData

PartitionKey = Union[PartitionData, Tuple, list]


class PartitionSet:
    """A set of partition tuples, each scoped by the id of the partition spec that produced it."""

    def __init__(self, partitions: Iterable[Tuple[int, PartitionKey]] = ()):
        self._partitions: Dict[int, Set[tuple]] = {}
        for spec_id, partition in partitions:
            self.add(spec_id, partition)

    @staticmethod
    def _key(partition: PartitionKey) -> tuple:
        if isinstance(partition, PartitionData):
            return tuple(partition.values)
        return tuple(partition)

    def add(self, spec_id: int, partition: PartitionKey) -> bool:
        key = self._key(partition)
        members = self._partitions.setdefault(spec_id, set())
        if key in members:
            return False
        members.add(key)
        return True

    def contains(self, spec_id: int, partition: PartitionKey) -> bool:
        members = self._partitions.get(spec_id)
        return members is not None and self._key(partition) in members

    def remove(self, spec_id: int, partition: PartitionKey) -> bool:
        members = self._partitions.get(spec_id)
        key = self._key(partition)
        if members is None or key not in members:
            return False
        members.remove(key)
        if not members:
            del self._partitions[spec_id]
        return True

    def is_empty(self) -> bool:
        return not self._partitions

    def __contains__(self, item: Tuple[int, PartitionKey]) -> bool:
        spec_id, partition = item
        return self.contains(spec_id, partition)

    def __iter__(self) -> Iterator[Tuple[int, tuple]]:
        for spec_id, members in self._partitions.items():
            for key in members:
                yield spec_id, key

    def __len__(self) -> int:
        return sum(len(members) for members in self._partitions.values())

    def __str__(self) -> str:
        return "PartitionSet({})".format(", ".join(f"{spec_id}:{key}" for spec_id, key in self))
