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

from pyicemanifest.common.options.config_option import ConfigOptions
from pyicemanifest.common.options.options import Options


class ManifestReadOptions:
    REUSE_CONTAINERS = ConfigOptions.key("manifest.read.reuse-containers").boolean_type().default_value(
        True).with_description("Reuse one entry and file container per decoded manifest row")
    CASE_SENSITIVE = ConfigOptions.key("manifest.read.case-sensitive").boolean_type().default_value(
        True).with_description("Resolve selected columns and filter references case sensitively")

    def __init__(self, options: Options):
        self.options = options

    @classmethod
    def from_dict(cls, data: dict) -> 'ManifestReadOptions':
        return cls(Options(data))

    def reuse_containers(self) -> bool:
        return self.options.get(ManifestReadOptions.REUSE_CONTAINERS)

    def case_sensitive(self) -> bool:
        return self.options.get(ManifestReadOptions.CASE_SENSITIVE)


class OssOptions:
    OSS_ACCESS_KEY_ID = ConfigOptions.key("fs.oss.accessKeyId").string_type().no_default_value().with_description(
        "OSS access key ID")
    OSS_ACCESS_KEY_SECRET = ConfigOptions.key(
        "fs.oss.accessKeySecret").string_type().no_default_value().with_description("OSS access key secret")
    OSS_SECURITY_TOKEN = ConfigOptions.key("fs.oss.securityToken").string_type().no_default_value().with_description(
        "OSS security token")
    OSS_ENDPOINT = ConfigOptions.key("fs.oss.endpoint").string_type().no_default_value().with_description(
        "OSS endpoint")
    OSS_REGION = ConfigOptions.key("fs.oss.region").string_type().no_default_value().with_description("OSS region")


class S3Options:
    S3_ACCESS_KEY_ID = ConfigOptions.key("fs.s3.accessKeyId").string_type().no_default_value().with_description(
        "S3 access key ID")
    S3_ACCESS_KEY_SECRET = ConfigOptions.key("fs.s3.accessKeySecret").string_type().no_default_value().with_description(
        "S3 access key secret")
    S3_SECURITY_TOKEN = ConfigOptions.key("fs.s3.securityToken").string_type().no_default_value().with_description(
        "S3 security token")
    S3_ENDPOINT = ConfigOptions.key("fs.s3.endpoint").string_type().no_default_value().with_description("S3 endpoint")
    S3_REGION = ConfigOptions.key("fs.s3.region").string_type().no_default_value().with_description("S3 region")
