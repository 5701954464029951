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

from typing import Dict, Optional

from pyicemanifest.common.options.config_option import ConfigOption, convert_value


class Options:
    """String-keyed configuration map read through typed ConfigOptions."""

    def __init__(self, data: Optional[Dict[str, str]] = None):
        self.data = dict(data) if data else {}

    @classmethod
    def from_none(cls) -> 'Options':
        return cls({})

    def to_map(self) -> dict:
        return self.data

    def get(self, key: ConfigOption, default=None):
        """
        Get the value of the given option converted to its declared type, falling back
        to ``default`` and then to the option's own default value.
        """
        main_key = key.key()
        if main_key in self.data:
            raw_value = self.data[main_key]
            if raw_value is not None:
                return convert_value(raw_value, key.get_clazz())

        return default if default is not None else key.default_value()

    def set(self, key: ConfigOption, value) -> 'Options':
        self.data[key.key()] = str(value).lower() if isinstance(value, bool) else str(value)
        return self

    def contains(self, key: ConfigOption) -> bool:
        return key.key() in self.data

    def copy(self) -> 'Options':
        return Options(dict(self.data))
