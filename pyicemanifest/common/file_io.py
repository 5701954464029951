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
import logging
import os
import re
from pathlib import PurePosixPath
from typing import Any, Dict, Optional, Union
from urllib.parse import urlparse

import pyarrow
import pyarrow.fs
from packaging.version import parse
from pyarrow.fs import FileSystem

from pyicemanifest.common.options import Options
from pyicemanifest.common.options.config import OssOptions, S3Options

logger = logging.getLogger(__name__)

# credentials read from the catalog options for each S3-compatible store:
# (access key, secret key, session token, region, endpoint)
_OBJECT_STORE_OPTIONS = {
    "oss": (OssOptions.OSS_ACCESS_KEY_ID, OssOptions.OSS_ACCESS_KEY_SECRET, OssOptions.OSS_SECURITY_TOKEN,
            OssOptions.OSS_REGION, OssOptions.OSS_ENDPOINT),
    "s3": (S3Options.S3_ACCESS_KEY_ID, S3Options.S3_ACCESS_KEY_SECRET, S3Options.S3_SECURITY_TOKEN,
           S3Options.S3_REGION, S3Options.S3_ENDPOINT),
}
_SCHEME_ALIASES = {"s3a": "s3", "s3n": "s3"}


class FileIO:
    """Byte-level access to manifest locations through a pyarrow filesystem chosen by URI scheme."""

    def __init__(self, warehouse: str, catalog_options: Union[Options, Dict[str, str], None] = None):
        if not isinstance(catalog_options, Options):
            catalog_options = Options(catalog_options)
        self.properties = catalog_options
        scheme = urlparse(warehouse).scheme or "file"
        scheme = _SCHEME_ALIASES.get(scheme, scheme)
        if scheme == "file":
            self.filesystem = pyarrow.fs.LocalFileSystem()
            self._object_store = False
        elif scheme in _OBJECT_STORE_OPTIONS:
            self.filesystem = self._object_store_fs(scheme)
            self._object_store = True
        else:
            raise ValueError(f"Unrecognized filesystem type in URI: {scheme}")
        logger.debug("Using %s for manifests under %s", type(self.filesystem).__name__, warehouse)

    @staticmethod
    def _s3_client_tuning(max_attempts: int = 10, timeout_seconds: int = 60) -> Dict[str, Any]:
        # retry strategy and timeouts arrived in pyarrow 8.0.0
        if parse(pyarrow.__version__) < parse("8.0.0"):
            return {}
        return {
            'request_timeout': timeout_seconds,
            'connect_timeout': timeout_seconds,
            'retry_strategy': pyarrow.fs.AwsStandardS3RetryStrategy(max_attempts=max_attempts),
        }

    def _object_store_fs(self, scheme: str) -> FileSystem:
        access_key, secret_key, token, region, endpoint = (
            self.properties.get(option) for option in _OBJECT_STORE_OPTIONS[scheme])
        return pyarrow.fs.S3FileSystem(
            access_key=access_key,
            secret_key=secret_key,
            session_token=token,
            region=region,
            endpoint_override=endpoint,
            force_virtual_addressing=True,
            **self._s3_client_tuning())

    def to_filesystem_path(self, location: str) -> str:
        """Strip the scheme from a location; object stores keep the bucket as the first segment."""
        uri = urlparse(location)
        if not uri.scheme or (len(uri.scheme) == 1 and not uri.netloc):
            # plain path, possibly with a windows drive letter
            return location if self._object_store else os.path.abspath(location)
        path = re.sub(r'/+', '/', uri.path)
        if self._object_store:
            path = path.lstrip('/')
            return f"{uri.netloc}/{path}" if path else uri.netloc
        return path or '.'

    def _info(self, location: str) -> pyarrow.fs.FileInfo:
        return self.filesystem.get_file_info(self.to_filesystem_path(location))

    def new_input_stream(self, location: str):
        return self.filesystem.open_input_file(self.to_filesystem_path(location))

    def new_output_stream(self, location: str):
        path = self.to_filesystem_path(location)
        parent = str(PurePosixPath(path).parent)
        if not self._object_store and parent:
            self.filesystem.create_dir(parent, recursive=True)
        return self.filesystem.open_output_stream(path)

    def exists(self, location: str) -> bool:
        try:
            return self._info(location).type != pyarrow.fs.FileType.NotFound
        except OSError:
            return False

    def get_file_size(self, location: str) -> int:
        size = self._info(location).size
        if size is None:
            raise ValueError(f"File size not available for {location}")
        return size

    def delete(self, location: str) -> bool:
        try:
            self.filesystem.delete_file(self.to_filesystem_path(location))
            return True
        except OSError as e:
            logger.warning("Failed to delete %s: %s", location, e)
            return False

    def new_input_file(self, location: str, length: Optional[int] = None) -> 'InputFile':
        from pyicemanifest.common.input_file import InputFile

        return InputFile(self, location, length)
