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

from typing import Dict, List

from pyicemanifest.schema.types import (ListType, MapType, NestedField,
                                        StructType, Types)

CONTENT = NestedField.optional_field(
    134, "content", Types.INT, "Contents of the file: 0=data, 1=position deletes, 2=equality deletes")
FILE_PATH = NestedField.required_field(100, "file_path", Types.STRING, "Location URI with FS scheme")
FILE_FORMAT = NestedField.required_field(101, "file_format", Types.STRING, "File format name: avro, orc, or parquet")
SPEC_ID = NestedField.optional_field(141, "spec_id", Types.INT, "Partition spec ID")
RECORD_COUNT = NestedField.required_field(103, "record_count", Types.LONG, "Number of records in the file")
FILE_SIZE = NestedField.required_field(104, "file_size_in_bytes", Types.LONG, "Total file size in bytes")
COLUMN_SIZES = NestedField.optional_field(
    108, "column_sizes", MapType(117, Types.INT, 118, Types.LONG, True), "Map of column id to total size on disk")
VALUE_COUNTS = NestedField.optional_field(
    109, "value_counts", MapType(119, Types.INT, 120, Types.LONG, True), "Map of column id to total count")
NULL_VALUE_COUNTS = NestedField.optional_field(
    110, "null_value_counts", MapType(121, Types.INT, 122, Types.LONG, True), "Map of column id to null value count")
NAN_VALUE_COUNTS = NestedField.optional_field(
    137, "nan_value_counts", MapType(138, Types.INT, 139, Types.LONG, True), "Map of column id to number of NaN values")
LOWER_BOUNDS = NestedField.optional_field(
    125, "lower_bounds", MapType(126, Types.INT, 127, Types.BINARY, True), "Map of column id to lower bound")
UPPER_BOUNDS = NestedField.optional_field(
    128, "upper_bounds", MapType(129, Types.INT, 130, Types.BINARY, True), "Map of column id to upper bound")
KEY_METADATA = NestedField.optional_field(131, "key_metadata", Types.BINARY, "Encryption key metadata blob")
SPLIT_OFFSETS = NestedField.optional_field(
    132, "split_offsets", ListType(133, Types.LONG, True), "Splittable offsets")
EQUALITY_IDS = NestedField.optional_field(
    135, "equality_ids", ListType(136, Types.INT, True), "Equality comparison field IDs")
SORT_ORDER_ID = NestedField.optional_field(140, "sort_order_id", Types.INT, "Sort order ID")
FIRST_ROW_ID = NestedField.optional_field(
    142, "first_row_id", Types.LONG, "The first row ID assigned to the first row in the data file")
REFERENCED_DATA_FILE = NestedField.optional_field(
    143, "referenced_data_file", Types.STRING, "Fully qualified location of a data file that all deletes reference")
CONTENT_OFFSET = NestedField.optional_field(
    144, "content_offset", Types.LONG, "The offset in the file where the content starts")
CONTENT_SIZE = NestedField.optional_field(
    145, "content_size_in_bytes", Types.LONG, "The length of referenced content stored in the file")

PARTITION_ID = 102
PARTITION_NAME = "partition"
PARTITION_DOC = "Partition data tuple, schema based on the partition spec"

# Integer.MAX_VALUE - 2, reserved for the row position metadata column
ROW_POSITION = NestedField.required_field(
    2147483645, "_pos", Types.LONG, "Ordinal position of a row in the source data file")

STATS_COLUMNS: List[str] = [
    "value_counts", "null_value_counts", "nan_value_counts", "lower_bounds", "upper_bounds", "record_count"]


def get_type(partition_type: StructType) -> StructType:
    """The data file struct for a manifest whose partition tuples have the given type."""
    return StructType([
        CONTENT,
        FILE_PATH,
        FILE_FORMAT,
        SPEC_ID,
        NestedField.required_field(PARTITION_ID, PARTITION_NAME, partition_type, PARTITION_DOC),
        RECORD_COUNT,
        FILE_SIZE,
        COLUMN_SIZES,
        VALUE_COUNTS,
        NULL_VALUE_COUNTS,
        NAN_VALUE_COUNTS,
        LOWER_BOUNDS,
        UPPER_BOUNDS,
        KEY_METADATA,
        SPLIT_OFFSETS,
        EQUALITY_IDS,
        SORT_ORDER_ID,
        FIRST_ROW_ID,
        REFERENCED_DATA_FILE,
        CONTENT_OFFSET,
        CONTENT_SIZE,
    ])


def is_metadata_column(field_id: int) -> bool:
    return field_id == ROW_POSITION.id


METADATA_COLUMNS: Dict[int, NestedField] = {ROW_POSITION.id: ROW_POSITION}
