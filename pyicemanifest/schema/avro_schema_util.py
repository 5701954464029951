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

from typing import Any, Dict, Set

from pyicemanifest.schema.types import (IcebergType, ListType, MapType,
                                        NestedField, PrimitiveType, StructType)

FIELD_ID_PROP = "field-id"
ELEMENT_ID_PROP = "element-id"
KEY_ID_PROP = "key-id"
VALUE_ID_PROP = "value-id"

_PRIMITIVES = {
    "boolean": "boolean",
    "int": "int",
    "long": "long",
    "float": "float",
    "double": "double",
    "date": {"type": "int", "logicalType": "date"},
    "time": {"type": "long", "logicalType": "time-micros"},
    "timestamp": {"type": "long", "logicalType": "timestamp-micros", "adjust-to-utc": False},
    "timestamptz": {"type": "long", "logicalType": "timestamp-micros", "adjust-to-utc": True},
    "string": "string",
    "binary": "bytes",
}


def convert_struct(struct: StructType, record_name: str) -> Dict[str, Any]:
    """
    Convert a struct to an Avro record schema carrying Iceberg field ids.

    Records and map entries are named after the field ids they hold (``r102``,
    ``k117_v118``) so that a projected schema resolves against the schema a manifest
    was written with.
    """
    return _AvroSchemaConverter().struct(struct, record_name)


class _AvroSchemaConverter:

    def __init__(self):
        # Avro named types may only be defined once per schema
        self.names: Set[str] = set()

    def struct(self, struct: StructType, record_name: str) -> Any:
        if record_name in self.names:
            return record_name
        self.names.add(record_name)
        return {
            "type": "record",
            "name": record_name,
            "fields": [self.field(field) for field in struct.fields],
        }

    def field(self, field: NestedField) -> Dict[str, Any]:
        avro_type = self.type(field.type, "r" + str(field.id))
        result: Dict[str, Any] = {"name": field.name}
        if field.doc is not None:
            result["doc"] = field.doc
        if field.required:
            result["type"] = avro_type
        else:
            result["type"] = ["null", avro_type]
            result["default"] = None
        result[FIELD_ID_PROP] = field.id
        return result

    def type(self, field_type: IcebergType, record_name: str) -> Any:
        if isinstance(field_type, StructType):
            return self.struct(field_type, record_name)
        if isinstance(field_type, ListType):
            return {
                "type": "array",
                "items": _optional(self.type(field_type.element, "r" + str(field_type.element_id)),
                                   field_type.element_required),
                ELEMENT_ID_PROP: field_type.element_id,
            }
        if isinstance(field_type, MapType):
            return self.map(field_type)
        if isinstance(field_type, PrimitiveType):
            return self.primitive(field_type)
        raise ValueError(f"Cannot convert type to Avro: {field_type}")

    def map(self, map_type: MapType) -> Any:
        key_type = map_type.key
        value_type = _optional(self.type(map_type.value, "r" + str(map_type.value_id)), map_type.value_required)
        if isinstance(key_type, PrimitiveType) and key_type.type_id == "string":
            return {
                "type": "map",
                "values": value_type,
                KEY_ID_PROP: map_type.key_id,
                VALUE_ID_PROP: map_type.value_id,
            }

        # non-string keys are stored as an array of key/value records
        entry_name = f"k{map_type.key_id}_v{map_type.value_id}"
        if entry_name in self.names:
            items: Any = entry_name
        else:
            self.names.add(entry_name)
            items = {
                "type": "record",
                "name": entry_name,
                "fields": [
                    {"name": "key", "type": self.type(key_type, "r" + str(map_type.key_id)),
                     FIELD_ID_PROP: map_type.key_id},
                    {"name": "value", "type": value_type, FIELD_ID_PROP: map_type.value_id},
                ],
            }
        return {"type": "array", "logicalType": "map", "items": items}

    def primitive(self, primitive: PrimitiveType) -> Any:
        type_id = primitive.type_id
        if type_id in _PRIMITIVES:
            mapped = _PRIMITIVES[type_id]
            return dict(mapped) if isinstance(mapped, dict) else mapped
        if type_id == "uuid":
            return self.named_fixed("uuid_fixed", {"size": 16, "logicalType": "uuid"})
        if type_id == "fixed":
            return self.named_fixed(f"fixed_{primitive.length}", {"size": primitive.length})
        if type_id == "decimal":
            return self.named_fixed(f"decimal_{primitive.precision}_{primitive.scale}", {
                "size": decimal_required_bytes(primitive.precision),
                "logicalType": "decimal",
                "precision": primitive.precision,
                "scale": primitive.scale,
            })
        raise ValueError(f"Cannot convert type to Avro: {primitive}")

    def named_fixed(self, name: str, props: Dict[str, Any]) -> Any:
        if name in self.names:
            return name
        self.names.add(name)
        result = {"type": "fixed", "name": name}
        result.update(props)
        return result


def _optional(avro_type: Any, required: bool) -> Any:
    return avro_type if required else ["null", avro_type]


def decimal_required_bytes(precision: int) -> int:
    if precision <= 0 or precision > 40:
        raise ValueError(f"Unsupported decimal precision: {precision}")
    length = 1
    while (1 << (8 * length - 1)) - 1 < 10 ** precision - 1:
        length += 1
    return length
