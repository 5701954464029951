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

from pyicemanifest.expressions.predicate import Predicate
from pyicemanifest.schema.schema import Schema


class InclusiveMetricsEvaluator:
    """
    Decides from a file's column metrics whether any of its rows might match a row filter.

    ``eval`` returns False only when the metrics prove that no row can match. Missing
    metrics never exclude a file.
    """

    def __init__(self, schema: Schema, expr: Predicate, case_sensitive: bool = True):
        self.schema = schema
        self.expr = expr.rewrite_not().bind(schema, case_sensitive)

    def eval(self, file) -> bool:
        record_count = file.record_count
        if record_count is not None:
            if record_count == 0:
                return False
            if record_count < 0:
                # older writers could record a negative count for an unknown number of rows
                return True
        return self.expr.test_by_metrics(file)
