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

from typing import Optional

from pyicemanifest.common.exceptions import RuntimeIOException


class InputFile:
    """A readable location. The caller owns it; readers only open streams on it."""

    def __init__(self, file_io, location: str, length: Optional[int] = None):
        self.file_io = file_io
        self._location = location
        self._length = length

    def location(self) -> str:
        return self._location

    def get_length(self) -> int:
        if self._length is None:
            self._length = self.file_io.get_file_size(self._location)
        return self._length

    def new_stream(self):
        try:
            return self.file_io.new_input_stream(self._location)
        except OSError as e:
            raise RuntimeIOException(f"Failed to open input stream for file: {self._location}", e) from e

    def exists(self) -> bool:
        return self.file_io.exists(self._location)

    def __str__(self):
        return self._location
