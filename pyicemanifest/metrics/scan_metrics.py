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

import threading
from abc import ABC, abstractmethod


class Counter(ABC):

    @abstractmethod
    def increment(self, amount: int = 1):
        pass

    @abstractmethod
    def value(self) -> int:
        pass


class AtomicCounter(Counter):

    def __init__(self, name: str, initial_value: int = 0):
        self.name = name
        self._value = initial_value
        self._lock = threading.RLock()

    def increment(self, amount: int = 1):
        with self._lock:
            self._value += amount

    def value(self) -> int:
        with self._lock:
            return self._value

    def __str__(self) -> str:
        return f"{self.name}={self.value()}"


class NoopCounter(Counter):

    def increment(self, amount: int = 1):
        pass

    def value(self) -> int:
        return 0


NOOP_COUNTER = NoopCounter()


class ScanMetrics:
    """Counters reported while planning a scan."""

    def __init__(self, skipped_data_files: Counter = NOOP_COUNTER,
                 skipped_delete_files: Counter = NOOP_COUNTER):
        self.skipped_data_files = skipped_data_files
        self.skipped_delete_files = skipped_delete_files

    @staticmethod
    def noop() -> 'ScanMetrics':
        return _NOOP_SCAN_METRICS

    @staticmethod
    def of() -> 'ScanMetrics':
        return ScanMetrics(AtomicCounter("skipped-data-files"), AtomicCounter("skipped-delete-files"))

    def __str__(self) -> str:
        return f"ScanMetrics({self.skipped_data_files}, {self.skipped_delete_files})"


_NOOP_SCAN_METRICS = ScanMetrics()
