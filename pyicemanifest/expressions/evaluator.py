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
from pyicemanifest.schema.types import StructType


class Evaluator:
    """Evaluates an expression against partition tuples of the given struct type."""

    def __init__(self, struct: StructType, expr: Predicate, case_sensitive: bool = True):
        self.struct = struct
        self.expr = expr.rewrite_not().bind(Schema(struct.fields), case_sensitive)

    def eval(self, record) -> bool:
        return self.expr.test(record)
