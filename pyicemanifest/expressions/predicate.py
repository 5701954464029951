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

import math
from abc import ABC, ABCMeta, abstractmethod
from dataclasses import dataclass
from typing import Any, ClassVar, Dict, List, Optional

from pyicemanifest.schema.conversions import Conversions
from pyicemanifest.schema.types import IcebergType, PrimitiveType

IN_PREDICATE_LIMIT = 200

_NEGATIONS = {
    'equal': 'notEqual',
    'notEqual': 'equal',
    'lessThan': 'greaterOrEqual',
    'greaterOrEqual': 'lessThan',
    'lessOrEqual': 'greaterThan',
    'greaterThan': 'lessOrEqual',
    'in': 'notIn',
    'notIn': 'in',
    'isNull': 'isNotNull',
    'isNotNull': 'isNull',
    'isNaN': 'notNaN',
    'notNaN': 'isNaN',
    'startsWith': 'notStartsWith',
    'notStartsWith': 'startsWith',
}


@dataclass
class Predicate:
    """
    A filter expression node.

    Leaves reference a column by name; 'and', 'or' and 'not' keep their children in
    ``literals``. Binding resolves the name against a schema and fills ``field_id``,
    ``field_type`` and ``index`` (the position within a flat struct, or -1).
    """
    method: str
    field: Optional[str]
    literals: Optional[List[Any]] = None
    index: Optional[int] = None
    field_id: Optional[int] = None
    field_type: Optional[IcebergType] = None

    testers: ClassVar[Dict[str, Any]] = {}

    def is_compound(self) -> bool:
        return self.method in ('and', 'or', 'not')

    def is_constant(self) -> bool:
        return self.method in ('alwaysTrue', 'alwaysFalse')

    def is_bound(self) -> bool:
        return self.field_id is not None

    def new_literals(self, literals: List[Any]) -> 'Predicate':
        return Predicate(
            method=self.method,
            field=self.field,
            literals=literals,
            index=self.index,
            field_id=self.field_id,
            field_type=self.field_type)

    def new_field(self, field: str) -> 'Predicate':
        """An unbound copy of this leaf referencing another column."""
        return Predicate(method=self.method, field=field, literals=self.literals)

    def negate(self) -> 'Predicate':
        if self.method == 'alwaysTrue':
            return Predicate('alwaysFalse', None)
        if self.method == 'alwaysFalse':
            return Predicate('alwaysTrue', None)
        if self.method == 'not':
            return self.literals[0]
        if self.method == 'and':
            return Predicate('or', None, [p.negate() for p in self.literals])
        if self.method == 'or':
            return Predicate('and', None, [p.negate() for p in self.literals])
        if self.method == 'between':
            return Predicate('or', None, [
                Predicate('lessThan', self.field, [self.literals[0]]),
                Predicate('greaterThan', self.field, [self.literals[1]])])
        negated = _NEGATIONS.get(self.method)
        if negated is None:
            # endsWith and contains have no negated form; keep the result inclusive
            return Predicate('alwaysTrue', None)
        return Predicate(negated, self.field, self.literals)

    def rewrite_not(self) -> 'Predicate':
        if self.method == 'not':
            return self.literals[0].rewrite_not().negate()
        if self.method in ('and', 'or'):
            return self.new_literals([p.rewrite_not() for p in self.literals])
        return self

    def bind(self, schema, case_sensitive: bool = True) -> 'Predicate':
        """Resolve column references against a Schema; raises ValueError for unknown columns."""
        if self.is_constant():
            return self
        if self.is_compound():
            return self.new_literals([p.bind(schema, case_sensitive) for p in self.literals])

        field = schema.find_field_by_name(self.field, case_sensitive)
        if field is None:
            raise ValueError(
                f"Cannot find field '{self.field}' in struct: {schema.as_struct()}")
        if not field.type.is_primitive():
            raise ValueError(f"Cannot filter on non-primitive field '{self.field}' of type {field.type}")
        literals = self.literals
        if literals is not None:
            literals = [Conversions.to_internal(field.type, lit) for lit in literals]
        return Predicate(
            method=self.method,
            field=field.name,
            literals=literals,
            index=schema.as_struct().index_of(field.id),
            field_id=field.id,
            field_type=field.type)

    def test(self, record) -> bool:
        """Evaluate against a struct-like record exposing get(pos). The predicate must be bound."""
        if self.method == 'alwaysTrue':
            return True
        if self.method == 'alwaysFalse':
            return False
        if self.method == 'and':
            return all(p.test(record) for p in self.literals)
        if self.method == 'or':
            return any(p.test(record) for p in self.literals)
        if self.method == 'not':
            return not self.literals[0].test(record)

        field_value = record.get(self.index)
        tester = Predicate.testers.get(self.method)
        if tester is None:
            raise ValueError(f"Unsupported predicate method: {self.method}")
        if field_value is None and not tester.accepts_null:
            return tester.null_result
        return tester.test_by_value(field_value, self.literals)

    def test_by_metrics(self, file) -> bool:
        """
        Inclusive evaluation against a file's column metrics. False means no row in the
        file can match; True means rows might match. The predicate must be bound.
        """
        if self.method == 'alwaysTrue':
            return True
        if self.method == 'alwaysFalse':
            return False
        if self.method == 'and':
            return all(p.test_by_metrics(file) for p in self.literals)
        if self.method == 'or':
            return any(p.test_by_metrics(file) for p in self.literals)
        if self.method == 'not':
            return self.rewrite_not().test_by_metrics(file)

        field_id = self.field_id
        value_count = _lookup(file.value_counts, field_id)
        null_count = _lookup(file.null_value_counts, field_id)
        nan_count = _lookup(file.nan_value_counts, field_id)
        nulls_only = value_count is not None and null_count is not None and value_count - null_count == 0
        nans_only = value_count is not None and nan_count is not None and nan_count == value_count

        if self.method == 'isNull':
            return null_count is None or null_count > 0
        if self.method == 'isNotNull':
            return not nulls_only
        if self.method == 'isNaN':
            if nan_count is not None and nan_count == 0:
                return False
            return not nulls_only
        if self.method == 'notNaN':
            return not nans_only

        tester = Predicate.testers.get(self.method)
        if tester is None:
            raise ValueError(f"Unsupported predicate method: {self.method}")
        if tester.refuted_by_nulls_only and (nulls_only or nans_only):
            return False

        lower = _bound(self.field_type, _lookup(file.lower_bounds, field_id))
        upper = _bound(self.field_type, _lookup(file.upper_bounds, field_id))
        if lower is None and upper is None:
            return True
        return tester.test_by_stats(lower, upper, self.literals)

    def __str__(self) -> str:
        if self.is_constant():
            return 'true' if self.method == 'alwaysTrue' else 'false'
        if self.method in ('and', 'or'):
            return '(' + f' {self.method} '.join(str(p) for p in self.literals) + ')'
        if self.method == 'not':
            return f'not({self.literals[0]})'
        if self.literals is None:
            return f'{self.method}({self.field})'
        return f'{self.method}({self.field}, {self.literals})'


def _lookup(values: Optional[Dict[int, Any]], field_id: int):
    if not values:
        return None
    return values.get(field_id)


def _bound(field_type: Optional[IcebergType], data: Optional[bytes]):
    if data is None or not isinstance(field_type, PrimitiveType):
        return None
    value = Conversions.from_bytes(field_type, data)
    if isinstance(value, float) and math.isnan(value):
        # NaN is not a usable bound
        return None
    return value


class RegisterMeta(ABCMeta):
    def __init__(cls, name, bases, dct):
        super().__init__(name, bases, dct)
        if not bool(cls.__abstractmethods__):
            Predicate.testers[cls.name] = cls()


class Tester(ABC, metaclass=RegisterMeta):

    name = None
    # whether a null value may satisfy the predicate, and the result when it cannot be tested
    accepts_null = False
    null_result = False
    # a column holding only nulls or only NaNs cannot satisfy the predicate
    refuted_by_nulls_only = True

    @abstractmethod
    def test_by_value(self, val, literals) -> bool:
        """
        Test based on the specific val and literals.
        """

    @abstractmethod
    def test_by_stats(self, min_v, max_v, literals) -> bool:
        """
        Test based on the lower and upper bounds and literals. Either bound may be None
        when unknown; the result must stay True whenever rows might match.
        """


class Equal(Tester):

    name = 'equal'

    def test_by_value(self, val, literals) -> bool:
        return val == literals[0]

    def test_by_stats(self, min_v, max_v, literals) -> bool:
        return (min_v is None or min_v <= literals[0]) and (max_v is None or literals[0] <= max_v)


class NotEqual(Tester):

    name = "notEqual"
    null_result = True
    refuted_by_nulls_only = False

    def test_by_value(self, val, literals) -> bool:
        return val != literals[0]

    def test_by_stats(self, min_v, max_v, literals) -> bool:
        return True


class LessThan(Tester):

    name = "lessThan"

    def test_by_value(self, val, literals) -> bool:
        return val < literals[0]

    def test_by_stats(self, min_v, max_v, literals) -> bool:
        return min_v is None or min_v < literals[0]


class LessOrEqual(Tester):

    name = "lessOrEqual"

    def test_by_value(self, val, literals) -> bool:
        return val <= literals[0]

    def test_by_stats(self, min_v, max_v, literals) -> bool:
        return min_v is None or min_v <= literals[0]


class GreaterThan(Tester):

    name = "greaterThan"

    def test_by_value(self, val, literals) -> bool:
        return val > literals[0]

    def test_by_stats(self, min_v, max_v, literals) -> bool:
        return max_v is None or max_v > literals[0]


class GreaterOrEqual(Tester):

    name = "greaterOrEqual"

    def test_by_value(self, val, literals) -> bool:
        return val >= literals[0]

    def test_by_stats(self, min_v, max_v, literals) -> bool:
        return max_v is None or max_v >= literals[0]


class In(Tester):

    name = "in"

    def test_by_value(self, val, literals) -> bool:
        return val in literals

    def test_by_stats(self, min_v, max_v, literals) -> bool:
        if len(literals) > IN_PREDICATE_LIMIT:
            return True
        return any((min_v is None or min_v <= lit) and (max_v is None or lit <= max_v) for lit in literals)


class NotIn(Tester):

    name = "notIn"
    null_result = True
    refuted_by_nulls_only = False

    def test_by_value(self, val, literals) -> bool:
        return val not in literals

    def test_by_stats(self, min_v, max_v, literals) -> bool:
        return True


class Between(Tester):

    name = "between"

    def test_by_value(self, val, literals) -> bool:
        return literals[0] <= val <= literals[1]

    def test_by_stats(self, min_v, max_v, literals) -> bool:
        return (max_v is None or literals[0] <= max_v) and (min_v is None or literals[1] >= min_v)


class StartsWith(Tester):

    name = "startsWith"

    def test_by_value(self, val, literals) -> bool:
        return isinstance(val, str) and val.startswith(literals[0])

    def test_by_stats(self, min_v, max_v, literals) -> bool:
        prefix = literals[0]
        length = len(prefix)
        if isinstance(min_v, str) and min_v[:length] > prefix:
            return False
        if isinstance(max_v, str) and max_v[:length] < prefix:
            return False
        return True


class NotStartsWith(Tester):

    name = "notStartsWith"
    null_result = True
    refuted_by_nulls_only = False

    def test_by_value(self, val, literals) -> bool:
        return not (isinstance(val, str) and val.startswith(literals[0]))

    def test_by_stats(self, min_v, max_v, literals) -> bool:
        prefix = literals[0]
        # bounds may be truncated, only a shared prefix on both sides is conclusive
        if isinstance(min_v, str) and isinstance(max_v, str) and len(min_v) >= len(prefix) \
                and len(max_v) >= len(prefix):
            return not (min_v.startswith(prefix) and max_v.startswith(prefix))
        return True


class EndsWith(Tester):

    name = "endsWith"

    def test_by_value(self, val, literals) -> bool:
        return isinstance(val, str) and val.endswith(literals[0])

    def test_by_stats(self, min_v, max_v, literals) -> bool:
        return True


class Contains(Tester):

    name = "contains"

    def test_by_value(self, val, literals) -> bool:
        return isinstance(val, str) and literals[0] in val

    def test_by_stats(self, min_v, max_v, literals) -> bool:
        return True


class IsNull(Tester):

    name = "isNull"
    accepts_null = True

    def test_by_value(self, val, literals) -> bool:
        return val is None

    def test_by_stats(self, min_v, max_v, literals) -> bool:
        return True


class IsNotNull(Tester):

    name = "isNotNull"
    accepts_null = True

    def test_by_value(self, val, literals) -> bool:
        return val is not None

    def test_by_stats(self, min_v, max_v, literals) -> bool:
        return True


class IsNaN(Tester):

    name = "isNaN"

    def test_by_value(self, val, literals) -> bool:
        return isinstance(val, float) and math.isnan(val)

    def test_by_stats(self, min_v, max_v, literals) -> bool:
        return True


class NotNaN(Tester):

    name = "notNaN"
    null_result = True

    def test_by_value(self, val, literals) -> bool:
        return not (isinstance(val, float) and math.isnan(val))

    def test_by_stats(self, min_v, max_v, literals) -> bool:
        return True
