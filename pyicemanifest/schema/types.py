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
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union


class IcebergType(ABC):

    def is_primitive(self) -> bool:
        return False

    def is_struct(self) -> bool:
        return False

    def is_nested(self) -> bool:
        return not self.is_primitive()

    @abstractmethod
    def to_dict(self) -> Union[str, Dict[str, Any]]:
        pass

    @abstractmethod
    def __str__(self) -> str:
        pass


_DECIMAL = re.compile(r"decimal\(\s*(\d+)\s*,\s*(\d+)\s*\)")
_FIXED = re.compile(r"fixed\[\s*(\d+)\s*\]")

PRIMITIVE_NAMES = {
    "boolean", "int", "long", "float", "double", "date", "time",
    "timestamp", "timestamptz", "timestamp_ns", "timestamptz_ns",
    "string", "uuid", "binary", "unknown",
}


@dataclass(frozen=True)
class PrimitiveType(IcebergType):
    type: str

    def is_primitive(self) -> bool:
        return True

    @property
    def type_id(self) -> str:
        if self.type.startswith("decimal"):
            return "decimal"
        if self.type.startswith("fixed"):
            return "fixed"
        return self.type

    @property
    def precision(self) -> Optional[int]:
        match = _DECIMAL.fullmatch(self.type)
        return int(match.group(1)) if match else None

    @property
    def scale(self) -> Optional[int]:
        match = _DECIMAL.fullmatch(self.type)
        return int(match.group(2)) if match else None

    @property
    def length(self) -> Optional[int]:
        match = _FIXED.fullmatch(self.type)
        return int(match.group(1)) if match else None

    def to_dict(self) -> str:
        return self.type

    def __str__(self) -> str:
        return self.type


class Types:
    BOOLEAN = PrimitiveType("boolean")
    INT = PrimitiveType("int")
    LONG = PrimitiveType("long")
    FLOAT = PrimitiveType("float")
    DOUBLE = PrimitiveType("double")
    DATE = PrimitiveType("date")
    TIME = PrimitiveType("time")
    TIMESTAMP = PrimitiveType("timestamp")
    TIMESTAMPTZ = PrimitiveType("timestamptz")
    STRING = PrimitiveType("string")
    UUID = PrimitiveType("uuid")
    BINARY = PrimitiveType("binary")

    @staticmethod
    def decimal(precision: int, scale: int) -> PrimitiveType:
        return PrimitiveType(f"decimal({precision}, {scale})")

    @staticmethod
    def fixed(length: int) -> PrimitiveType:
        return PrimitiveType(f"fixed[{length}]")


@dataclass
class NestedField:
    FIELD_ID = "id"
    FIELD_NAME = "name"
    FIELD_TYPE = "type"
    FIELD_REQUIRED = "required"
    FIELD_DOC = "doc"

    id: int
    name: str
    type: IcebergType
    required: bool = False
    doc: Optional[str] = None

    @classmethod
    def optional_field(cls, field_id: int, name: str, field_type: IcebergType,
                       doc: Optional[str] = None) -> 'NestedField':
        return cls(field_id, name, field_type, False, doc)

    @classmethod
    def required_field(cls, field_id: int, name: str, field_type: IcebergType,
                       doc: Optional[str] = None) -> 'NestedField':
        return cls(field_id, name, field_type, True, doc)

    @property
    def is_optional(self) -> bool:
        return not self.required

    def to_dict(self) -> Dict[str, Any]:
        result = {
            self.FIELD_ID: self.id,
            self.FIELD_NAME: self.name,
            self.FIELD_REQUIRED: self.required,
            self.FIELD_TYPE: self.type.to_dict(),
        }
        if self.doc is not None:
            result[self.FIELD_DOC] = self.doc
        return result

    def __str__(self) -> str:
        required = "required" if self.required else "optional"
        return f"{self.id}: {self.name}: {required} {self.type}"


@dataclass
class StructType(IcebergType):
    fields: List[NestedField]

    def __init__(self, fields: Optional[List[NestedField]] = None):
        self.fields = list(fields or [])

    def is_struct(self) -> bool:
        return True

    def field(self, field_id: int) -> Optional[NestedField]:
        for field in self.fields:
            if field.id == field_id:
                return field
        return None

    def field_by_name(self, name: str, case_sensitive: bool = True) -> Optional[NestedField]:
        if case_sensitive:
            return next((f for f in self.fields if f.name == name), None)
        lower = name.lower()
        return next((f for f in self.fields if f.name.lower() == lower), None)

    def index_of(self, field_id: int) -> int:
        for pos, field in enumerate(self.fields):
            if field.id == field_id:
                return pos
        return -1

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "struct",
            "fields": [field.to_dict() for field in self.fields],
        }

    def __len__(self) -> int:
        return len(self.fields)

    def __str__(self) -> str:
        return "struct<{}>".format(", ".join(str(f) for f in self.fields))


@dataclass
class ListType(IcebergType):
    element_id: int
    element: IcebergType
    element_required: bool = False

    def element_field(self) -> NestedField:
        return NestedField(self.element_id, "element", self.element, self.element_required)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "list",
            "element-id": self.element_id,
            "element": self.element.to_dict(),
            "element-required": self.element_required,
        }

    def __str__(self) -> str:
        return f"list<{self.element}>"


@dataclass
class MapType(IcebergType):
    key_id: int
    key: IcebergType
    value_id: int
    value: IcebergType
    value_required: bool = False

    def key_field(self) -> NestedField:
        return NestedField(self.key_id, "key", self.key, True)

    def value_field(self) -> NestedField:
        return NestedField(self.value_id, "value", self.value, self.value_required)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "map",
            "key-id": self.key_id,
            "key": self.key.to_dict(),
            "value-id": self.value_id,
            "value": self.value.to_dict(),
            "value-required": self.value_required,
        }

    def __str__(self) -> str:
        return f"map<{self.key}, {self.value}>"


class TypeParser:

    @staticmethod
    def parse_primitive(type_string: str) -> PrimitiveType:
        normalized = type_string.strip().lower()
        if normalized in PRIMITIVE_NAMES:
            return PrimitiveType(normalized)
        match = _DECIMAL.fullmatch(normalized)
        if match:
            return Types.decimal(int(match.group(1)), int(match.group(2)))
        match = _FIXED.fullmatch(normalized)
        if match:
            return Types.fixed(int(match.group(1)))
        raise ValueError("Cannot parse type string to primitive: {}".format(type_string))

    @staticmethod
    def parse_type(json_data: Union[Dict[str, Any], str]) -> IcebergType:
        if isinstance(json_data, str):
            return TypeParser.parse_primitive(json_data)

        if isinstance(json_data, dict):
            if "type" not in json_data:
                raise ValueError("Missing 'type' field in JSON: {}".format(json_data))
            type_string = json_data["type"]

            if type_string == "struct":
                return StructType([TypeParser.parse_field(f) for f in json_data.get("fields", [])])
            elif type_string == "list":
                return ListType(
                    int(json_data["element-id"]),
                    TypeParser.parse_type(json_data["element"]),
                    bool(json_data.get("element-required", False)))
            elif type_string == "map":
                return MapType(
                    int(json_data["key-id"]),
                    TypeParser.parse_type(json_data["key"]),
                    int(json_data["value-id"]),
                    TypeParser.parse_type(json_data["value"]),
                    bool(json_data.get("value-required", False)))

        raise ValueError("Cannot parse type from JSON: {}".format(json_data))

    @staticmethod
    def parse_field(json_data: Dict[str, Any]) -> NestedField:
        for key in (NestedField.FIELD_ID, NestedField.FIELD_NAME, NestedField.FIELD_TYPE):
            if key not in json_data:
                raise ValueError("Missing '{}' field in JSON: {}".format(key, json_data))
        return NestedField(
            id=int(json_data[NestedField.FIELD_ID]),
            name=json_data[NestedField.FIELD_NAME],
            type=TypeParser.parse_type(json_data[NestedField.FIELD_TYPE]),
            required=bool(json_data.get(NestedField.FIELD_REQUIRED, False)),
            doc=json_data.get(NestedField.FIELD_DOC),
        )
