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

import json
from typing import Collection, Dict, List, Optional, Set

from pyicemanifest.schema.types import (IcebergType, ListType, MapType,
                                        NestedField, StructType, TypeParser)

ALL_COLUMNS = "*"


class Schema:
    FIELD_SCHEMA_ID = "schema-id"
    FIELD_FIELDS = "fields"
    FIELD_IDENTIFIER_FIELD_IDS = "identifier-field-ids"

    def __init__(self, fields: Optional[List[NestedField]] = None, schema_id: int = 0,
                 identifier_field_ids: Optional[List[int]] = None):
        self.struct = StructType(fields)
        self.schema_id = schema_id
        self.identifier_field_ids = list(identifier_field_ids or [])
        self._id_to_field: Optional[Dict[int, NestedField]] = None
        self._name_to_id: Optional[Dict[str, int]] = None
        self._lower_name_to_id: Optional[Dict[str, int]] = None

    @property
    def fields(self) -> List[NestedField]:
        return self.struct.fields

    def as_struct(self) -> StructType:
        return self.struct

    def columns(self) -> List[NestedField]:
        return self.struct.fields

    def _index(self):
        if self._id_to_field is None:
            id_to_field = {}
            name_to_id = {}
            _index_fields(self.struct.fields, [], id_to_field, name_to_id)
            self._id_to_field = id_to_field
            self._name_to_id = name_to_id
            self._lower_name_to_id = {name.lower(): fid for name, fid in name_to_id.items()}

    def find_field(self, field_id: int) -> Optional[NestedField]:
        self._index()
        return self._id_to_field.get(field_id)

    def find_type(self, field_id: int) -> Optional[IcebergType]:
        field = self.find_field(field_id)
        return field.type if field is not None else None

    def find_field_by_name(self, name: str, case_sensitive: bool = True) -> Optional[NestedField]:
        field_id = self.lookup_id(name, case_sensitive)
        return self.find_field(field_id) if field_id is not None else None

    def lookup_id(self, name: str, case_sensitive: bool = True) -> Optional[int]:
        self._index()
        if case_sensitive:
            return self._name_to_id.get(name)
        return self._lower_name_to_id.get(name.lower())

    def select(self, names: Collection[str]) -> 'Schema':
        return self._select(names, True)

    def case_insensitive_select(self, names: Collection[str]) -> 'Schema':
        return self._select(names, False)

    def _select(self, names: Collection[str], case_sensitive: bool) -> 'Schema':
        if ALL_COLUMNS in names:
            return self

        # names that do not resolve select nothing
        selected = set()
        for name in names:
            field_id = self.lookup_id(name, case_sensitive)
            if field_id is not None:
                selected.add(field_id)
        return Schema(_select_fields(self.struct.fields, selected), self.schema_id)

    def to_dict(self) -> Dict:
        result = {
            "type": "struct",
            self.FIELD_SCHEMA_ID: self.schema_id,
            self.FIELD_FIELDS: [field.to_dict() for field in self.fields],
        }
        if self.identifier_field_ids:
            result[self.FIELD_IDENTIFIER_FIELD_IDS] = self.identifier_field_ids
        return result

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @staticmethod
    def from_dict(data: Dict) -> 'Schema':
        if data.get("type", "struct") != "struct":
            raise ValueError("Cannot parse schema from non-struct type: {}".format(data))
        fields = [TypeParser.parse_field(field) for field in data.get(Schema.FIELD_FIELDS, [])]
        return Schema(
            fields,
            schema_id=data.get(Schema.FIELD_SCHEMA_ID, 0),
            identifier_field_ids=data.get(Schema.FIELD_IDENTIFIER_FIELD_IDS))

    @staticmethod
    def from_json(json_str: str) -> 'Schema':
        try:
            data = json.loads(json_str)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid schema JSON: {e}") from e
        return Schema.from_dict(data)

    def __eq__(self, other) -> bool:
        if not isinstance(other, Schema):
            return False
        return self.struct == other.struct

    def __str__(self) -> str:
        return "table {\n  " + "\n  ".join(str(f) for f in self.fields) + "\n}"


def _index_fields(fields: List[NestedField], path: List[str],
                  id_to_field: Dict[int, NestedField], name_to_id: Dict[str, int]):
    for field in fields:
        full_name = ".".join(path + [field.name])
        id_to_field[field.id] = field
        name_to_id[full_name] = field.id
        for child in _children(field.type):
            _index_fields([child], path + [field.name], id_to_field, name_to_id)


def _children(field_type: IcebergType) -> List[NestedField]:
    if isinstance(field_type, StructType):
        return field_type.fields
    if isinstance(field_type, ListType):
        return [field_type.element_field()]
    if isinstance(field_type, MapType):
        return [field_type.key_field(), field_type.value_field()]
    return []


def _contains_any(field: NestedField, selected: Set[int]) -> bool:
    if field.id in selected:
        return True
    return any(_contains_any(child, selected) for child in _children(field.type))


def _select_fields(fields: List[NestedField], selected: Set[int]) -> List[NestedField]:
    projected = []
    for field in fields:
        if field.id in selected:
            projected.append(field)
        elif isinstance(field.type, StructType) and _contains_any(field, selected):
            projected.append(NestedField(field.id, field.name,
                                         StructType(_select_fields(field.type.fields, selected)),
                                         field.required, field.doc))
        elif _contains_any(field, selected):
            # lists and maps are kept whole once any of their children is selected
            projected.append(field)
    return projected
