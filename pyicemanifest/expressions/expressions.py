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

from typing import Any, List

from pyicemanifest.expressions.predicate import Predicate


class Expressions:
    """Factory methods for filter expressions over column names."""

    _ALWAYS_TRUE = Predicate(method='alwaysTrue', field=None)
    _ALWAYS_FALSE = Predicate(method='alwaysFalse', field=None)

    @staticmethod
    def always_true() -> Predicate:
        return Expressions._ALWAYS_TRUE

    @staticmethod
    def always_false() -> Predicate:
        return Expressions._ALWAYS_FALSE

    @staticmethod
    def is_always_true(expr: Predicate) -> bool:
        return expr.method == 'alwaysTrue'

    @staticmethod
    def is_always_false(expr: Predicate) -> bool:
        return expr.method == 'alwaysFalse'

    @staticmethod
    def and_(*predicates: Predicate) -> Predicate:
        children = []
        for predicate in predicates:
            if predicate.method == 'alwaysFalse':
                return Expressions.always_false()
            if predicate.method == 'alwaysTrue':
                continue
            if predicate.method == 'and':
                children.extend(predicate.literals)
            else:
                children.append(predicate)
        if not children:
            return Expressions.always_true()
        if len(children) == 1:
            return children[0]
        return Predicate(method='and', field=None, literals=children)

    @staticmethod
    def or_(*predicates: Predicate) -> Predicate:
        children = []
        for predicate in predicates:
            if predicate.method == 'alwaysTrue':
                return Expressions.always_true()
            if predicate.method == 'alwaysFalse':
                continue
            if predicate.method == 'or':
                children.extend(predicate.literals)
            else:
                children.append(predicate)
        if not children:
            return Expressions.always_false()
        if len(children) == 1:
            return children[0]
        return Predicate(method='or', field=None, literals=children)

    @staticmethod
    def not_(predicate: Predicate) -> Predicate:
        if predicate.method == 'alwaysTrue':
            return Expressions.always_false()
        if predicate.method == 'alwaysFalse':
            return Expressions.always_true()
        if predicate.method == 'not':
            return predicate.literals[0]
        return Predicate(method='not', field=None, literals=[predicate])

    @staticmethod
    def equal(field: str, literal: Any) -> Predicate:
        return Predicate(method='equal', field=field, literals=[literal])

    @staticmethod
    def not_equal(field: str, literal: Any) -> Predicate:
        return Predicate(method='notEqual', field=field, literals=[literal])

    @staticmethod
    def less_than(field: str, literal: Any) -> Predicate:
        return Predicate(method='lessThan', field=field, literals=[literal])

    @staticmethod
    def less_or_equal(field: str, literal: Any) -> Predicate:
        return Predicate(method='lessOrEqual', field=field, literals=[literal])

    @staticmethod
    def greater_than(field: str, literal: Any) -> Predicate:
        return Predicate(method='greaterThan', field=field, literals=[literal])

    @staticmethod
    def greater_or_equal(field: str, literal: Any) -> Predicate:
        return Predicate(method='greaterOrEqual', field=field, literals=[literal])

    @staticmethod
    def is_null(field: str) -> Predicate:
        return Predicate(method='isNull', field=field)

    @staticmethod
    def is_not_null(field: str) -> Predicate:
        return Predicate(method='isNotNull', field=field)

    @staticmethod
    def is_nan(field: str) -> Predicate:
        return Predicate(method='isNaN', field=field)

    @staticmethod
    def not_nan(field: str) -> Predicate:
        return Predicate(method='notNaN', field=field)

    @staticmethod
    def startswith(field: str, pattern_str: str) -> Predicate:
        return Predicate(method='startsWith', field=field, literals=[pattern_str])

    @staticmethod
    def not_startswith(field: str, pattern_str: str) -> Predicate:
        return Predicate(method='notStartsWith', field=field, literals=[pattern_str])

    @staticmethod
    def endswith(field: str, pattern_str: str) -> Predicate:
        return Predicate(method='endsWith', field=field, literals=[pattern_str])

    @staticmethod
    def contains(field: str, pattern_str: str) -> Predicate:
        return Predicate(method='contains', field=field, literals=[pattern_str])

    @staticmethod
    def is_in(field: str, literals: List[Any]) -> Predicate:
        return Predicate(method='in', field=field, literals=list(literals))

    @staticmethod
    def is_not_in(field: str, literals: List[Any]) -> Predicate:
        return Predicate(method='notIn', field=field, literals=list(literals))

    @staticmethod
    def between(field: str, included_lower_bound: Any, included_upper_bound: Any) -> Predicate:
        return Predicate(method='between', field=field,
                         literals=[included_lower_bound, included_upper_bound])
