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

from typing import Dict, Optional, Union

from pyicemanifest.common.file_io import FileIO
from pyicemanifest.common.options.options import Options
from pyicemanifest.manifest.inheritable_metadata import \
    InheritableMetadataFactory
from pyicemanifest.manifest.manifest_reader import ManifestReader
from pyicemanifest.manifest.schema.manifest_file import (ManifestContent,
                                                         ManifestFile)
from pyicemanifest.partition.partition_spec import PartitionSpec


class ManifestFiles:
    """Entry points for reading the manifests listed in a manifest list."""

    @staticmethod
    def read(manifest: ManifestFile, file_io: FileIO,
             specs_by_id: Optional[Dict[int, PartitionSpec]] = None,
             options: Union[Options, dict, None] = None) -> ManifestReader:
        if manifest.content != ManifestContent.DATA:
            raise ValueError(f"Cannot read a delete manifest with a data file reader: {manifest.manifest_path}")
        input_file = file_io.new_input_file(manifest.manifest_path, manifest.manifest_length)
        return ManifestReader(
            input_file,
            manifest.partition_spec_id,
            specs_by_id,
            InheritableMetadataFactory.from_manifest(manifest),
            ManifestContent.DATA,
            first_row_id=manifest.first_row_id,
            options=options)

    @staticmethod
    def read_delete_manifest(manifest: ManifestFile, file_io: FileIO,
                             specs_by_id: Optional[Dict[int, PartitionSpec]] = None,
                             options: Union[Options, dict, None] = None) -> ManifestReader:
        if manifest.content != ManifestContent.DELETES:
            raise ValueError(f"Cannot read a data manifest with a delete file reader: {manifest.manifest_path}")
        input_file = file_io.new_input_file(manifest.manifest_path, manifest.manifest_length)
        return ManifestReader(
            input_file,
            manifest.partition_spec_id,
            specs_by_id,
            InheritableMetadataFactory.from_manifest(manifest),
            ManifestContent.DELETES,
            options=options)
