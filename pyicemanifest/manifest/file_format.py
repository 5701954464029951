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

from enum import Enum
from typing import Optional


class FileFormat(Enum):
    AVRO = ("avro", True)
    PARQUET = ("parquet", True)
    ORC = ("orc", True)
    METADATA = ("metadata.json", False)
    PUFFIN = ("puffin", False)

    def __init__(self, ext: str, splittable: bool):
        self.ext = ext
        self.splittable = splittable

    def add_extension(self, file_name: str) -> str:
        if file_name.endswith("." + self.ext):
            return file_name
        return f"{file_name}.{self.ext}"

    @staticmethod
    def from_file_name(file_name: str) -> Optional['FileFormat']:
        lower = file_name.lower()
        for file_format in FileFormat:
            if lower.endswith("." + file_format.ext):
                return file_format
        return None

    @staticmethod
    def from_string(name: str) -> 'FileFormat':
        try:
            return FileFormat[name.upper()]
        except KeyError:
            raise ValueError(f"Unknown file format: {name}") from None
