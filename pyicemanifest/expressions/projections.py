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

from pyicemanifest.expressions.expressions import Expressions
from pyicemanifest.expressions.predicate import Predicate


class InclusiveProjection:
    """
    Rewrites a row filter over table columns into a filter over partition columns such
    that any partition holding a matching row also matches the projected filter.
    """

    def __init__(self, spec, case_sensitive: bool = True):
        self.spec = spec
        self.case_sensitive = case_sensitive

    def project(self, expr: Predicate) -> Predicate:
        return self._project(expr.rewrite_not())

    def _project(self, expr: Predicate) -> Predicate:
        if expr.is_constant():
            return expr
        if expr.method == 'and':
            return Expressions.and_(*[self._project(p) for p in expr.literals])
        if expr.method == 'or':
            return Expressions.or_(*[self._project(p) for p in expr.literals])

        bound = expr.bind(self.spec.schema, self.case_sensitive)
        projected = []
        for field in self.spec.fields_by_source_id(bound.field_id):
            predicate = field.transform.project(field.name, bound)
            if predicate is not None:
                projected.append(predicate)
        # a leaf no partition field can express places no constraint on partitions
        return Expressions.and_(*projected)


class Projections:

    @staticmethod
    def inclusive(spec, case_sensitive: bool = True) -> InclusiveProjection:
        return InclusiveProjection(spec, case_sensitive)
