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
from typing import List

logger = logging.getLogger(__name__)


class CloseableGroup:
    """
    Owns a set of closeable resources and closes each of them exactly once.

    close() may be called any number of times; only the first call releases anything.
    When several resources fail to close, the first failure is raised after every
    resource had its turn and the remaining failures are logged.
    """

    def __init__(self):
        self._closeables: List = []
        self._closed = False

    def add_closeable(self, closeable):
        if self._closed:
            # the group is already released, do not leak the late resource
            closeable.close()
            return
        self._closeables.append(closeable)

    def remove_closeable(self, closeable):
        """Forget a resource that its user already closed."""
        if closeable in self._closeables:
            self._closeables.remove(closeable)

    def close(self):
        if self._closed:
            return
        self._closed = True

        first_error = None
        while self._closeables:
            closeable = self._closeables.pop(0)
            try:
                closeable.close()
            except Exception as e:
                if first_error is None:
                    first_error = e
                else:
                    logger.warning("Suppressed failure while closing %s", closeable, exc_info=True)
        if first_error is not None:
            raise first_error

    def is_closed(self) -> bool:
        return self._closed

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
