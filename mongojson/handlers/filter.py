"""
### Filter Operation
The filter selects documents: it becomes the `WHERE` clause.

```python
collection.find({
    'age': {'$gte': 18, '$lte': 25},  # several operators on one field: all must match
    'sex': 'female',                  # a plain value means `$eq`
    'address.city': 'Kyiv',           # nested fields: dot-notation
})
```

Top-level keys are AND-ed.

#### Field Operators

| operator            | matches when the field...                                            |
|---------------------|----------------------------------------------------------------------|
| `$eq`, `$ne`        | equals / differs from the value                                      |
| `$lt`, `$lte`, `$gt`, `$gte` | compares so with the value                                  |
| `$in`, `$nin`       | equals one / none of the listed values                               |
| `$has`              | is an array with this element (PostgreSQL: or an object with this key) |
| `$all`              | is an array with every listed element                                |
| `$size`             | is an array of this length                                           |
| `$regex`            | matches a case-insensitive regular expression. Aliases: `$match`, `$preg` |
| `$text`             | contains the substring                                               |
| `$mod`              | `[divisor, remainder]`: `field % divisor == remainder`               |
| `$exists`           | is (`true`) or is not (`false`) set to a non-null value              |
| `$not`              | does not match the operators within; `{$not: 1}` is `{$ne: 1}`       |

A missing field and a `null` are indistinguishable: `{a: null}` matches both.

`$fuzzy` and `$func` can't be expressed in SQL. Pass a Python function as the filter instead:
it receives every loaded document and returns a bool.

#### Boolean Operators

`$and`, `$or`, `$nor` take a list of criteria objects; `$not` takes one criteria object.
"""

import operator

from sqlalchemy import Integer
from sqlalchemy.sql import and_, or_, not_, cast, true

from .base import MongoQueryHandlerBase
from ..codec import is_array, is_scalar
from ..exc import InvalidQueryError, UnsupportedOperatorError


# region Parsed criteria

class FilterExpressionBase:
    """ A parsed piece of criteria, ready to become SQL """

    __slots__ = ('operator_str', 'value')

    def __init__(self, operator_str, value):
        self.operator_str = operator_str
        self.value = value

    def compile_expression(self):
        raise NotImplementedError()

    @staticmethod
    def sql_anded_together(conditions):
        """ AND a list of SQL conditions; an empty list is TRUE """
        if not conditions:
            return true()
        if len(conditions) == 1:
            return conditions[0]
        return and_(*conditions).self_group()


class FilterBooleanExpression(FilterExpressionBase):
    """ $and, $or, $nor over several criteria objects; $not over one

        `value` holds parsed criteria: a list of lists of expressions, or, for $not, one list.
    """

    #: Combinator for every list operator; $nor is a negated $or
    COMBINATORS = {'$and': and_, '$or': or_, '$nor': or_}

    def __repr__(self):
        return '({}: {})'.format(self.operator_str, self.value)

    def compile_expression(self):
        compile_all = lambda expressions: self.sql_anded_together([e.compile_expression() for e in expressions])

        if self.operator_str == '$not':
            return not_(compile_all(self.value))

        try:
            combine = self.COMBINATORS[self.operator_str]
        except KeyError:
            raise NotImplementedError('Unknown boolean operator: {}'.format(self.operator_str))

        clauses = [compile_all(criteria) for criteria in self.value]
        condition = combine(*clauses)
        if len(clauses) > 1:
            condition = condition.self_group()

        return ~condition if self.operator_str == '$nor' else condition


class FilterFieldExpression(FilterExpressionBase):
    """ `field $operator value`

        Operator functions receive this object: it knows how to reach the field in the document.
    """

    __slots__ = ('grammar', 'document', 'field_name', 'operator_lambda')

    def __init__(self, grammar, document, field_name, operator_str, operator_lambda, value):
        """
        :type grammar: mongojson.dialects.DialectGrammar
        :param document: The JSON column
        :param field_name: Dotted path to the field
        :param operator_lambda: callable(expression, value) -> SQL condition
        """
        super(FilterFieldExpression, self).__init__(operator_str, value)
        self.grammar = grammar
        self.document = document
        self.field_name = field_name
        self.operator_lambda = operator_lambda

    def __repr__(self):
        return '{} {} {!r}'.format(self.field_name, self.operator_str, self.value)

    @property
    def json_value(self):
        """ The field, JSON-typed """
        return self.grammar.json_value(self.document, self.field_name)

    @property
    def json_text(self):
        """ The field, unquoted text """
        return self.grammar.json_text(self.document, self.field_name)

    @property
    def json_nullable(self):
        """ The field; SQL NULL for both a missing key and a JSON null """
        return self.grammar.json_nullable(self.document, self.field_name)

    def compare(self, op, value):
        """ `field <op> value`, where `op` is a function from the `operator` module """
        if value is None:
            if op is operator.eq:
                return self.json_nullable.is_(None)
            if op is operator.ne:
                return self.json_nullable.isnot(None)
            raise InvalidQueryError('Filter: {} can not be compared with null for field `{}`'
                                    .format(self.operator_str, self.field_name))

        if is_array(value) or isinstance(value, dict):
            if op not in (operator.eq, operator.ne):
                raise InvalidQueryError('Filter: {} argument must be a scalar for field `{}`'
                                        .format(self.operator_str, self.field_name))
            return op(self.json_value, self.grammar.json_constructor(value))

        col, val = self.grammar.comparable(self.document, self.field_name, value)
        return op(col, val)

    def compare_any(self, values, negate=False):
        """ `field [NOT] IN (values)` """
        col, vals = self.grammar.comparable(self.document, self.field_name, list(values))
        return col.notin_(vals) if negate else col.in_(vals)

    def compile_expression(self):
        return self.operator_lambda(self, self.value)

# endregion


def _mod(expr, value):
    """ $mod: [divisor, remainder]; the remainder defaults to 0 """
    divisor, remainder = (list(value) + [0])[:2]
    return cast(expr.json_text, Integer) % divisor == (remainder or 0)


class MongoFilter(MongoQueryHandlerBase):
    """ Filter criteria

        The input is one of:
        * None, {}: everything matches
        * a criteria object: compiled into a WHERE condition
        * a callable(document) -> bool: stored as `predicate`, and applied by the Cursor to loaded documents.
          No WHERE condition is generated then.
    """

    query_object_section_name = 'filter'

    def __init__(self, grammar, document, extra_operators=None):
        """
        :param extra_operators: Custom operators: {'$name': callable(expression, value) -> SQL condition}.
            `expression` is a FilterFieldExpression: use its `json_value`, `json_text`, `json_nullable`, `compare()`.
        :type extra_operators: dict[str, Callable]
        """
        super(MongoFilter, self).__init__(grammar, document)

        self._extra_operators = extra_operators or {}

        #: Parsed criteria: ANDed together in the end
        self.expressions = None
        #: The Python function, when the filter is one
        self.predicate = None

    #: Built-in operators: {'$name': callable(expression, value)}
    _operators = {
        '$eq':  lambda e, val: e.compare(operator.eq, val),
        '$ne':  lambda e, val: e.compare(operator.ne, val),
        '$lt':  lambda e, val: e.compare(operator.lt, val),
        '$lte': lambda e, val: e.compare(operator.le, val),
        '$gt':  lambda e, val: e.compare(operator.gt, val),
        '$gte': lambda e, val: e.compare(operator.ge, val),
        '$in':  lambda e, val: e.compare_any(val),
        '$nin': lambda e, val: e.compare_any(val, negate=True),
        '$has': lambda e, val: e.grammar.contains(e.document, e.field_name, val),
        '$all': lambda e, val: e.grammar.contains_all(e.document, e.field_name, val),
        '$regex': lambda e, val: e.json_text.regexp_match(str(val).strip('/'), flags='i'),
        '$size': lambda e, val: e.grammar.array_length(e.document, e.field_name) == val,
        '$mod': _mod,
        '$exists': lambda e, val: e.json_nullable.isnot(None) if val else e.json_nullable.is_(None),
        '$text': lambda e, val: e.json_text.contains(str(val), autoescape=True),
    }
    _operators['$match'] = _operators['$preg'] = _operators['$regex']

    _operators_require_array_value = frozenset(('$in', '$nin', '$all', '$mod'))
    _operators_require_scalar_value = frozenset(('$has', '$text', '$regex', '$match', '$preg'))

    #: Known operators that can't be compiled: {'$name': reason}
    _operators_unsupported = {
        '$fuzzy': 'fuzzy search is not available in SQL',
        '$func': 'use a Python function as the whole filter instead',
        '$fn': 'use a Python function as the whole filter instead',
        '$f': 'use a Python function as the whole filter instead',
    }

    #: Modifiers of other operators: skipped
    _operators_ignored = frozenset(('$options',))

    _boolean_operators = frozenset(('$and', '$or', '$nor', '$not'))

    # Override to customize compilation
    _FIELD_EXPRESSION_CLS = FilterFieldExpression
    _BOOLEAN_EXPRESSION_CLS = FilterBooleanExpression

    def input(self, criteria):
        super(MongoFilter, self).input(criteria)

        if callable(criteria):
            self.predicate = criteria
            self.expressions = []
        else:
            self.expressions = self._parse_criteria(criteria)
        return self

    def is_input_empty(self):
        return not self.expressions and self.predicate is None

    def merge(self, criteria):
        """ AND more criteria to the filter """
        self.expressions.extend(self._parse_criteria(criteria))
        return self

    def _parse_criteria(self, criteria):
        """ Criteria object -> list of expressions

        Everything is validated here, so a bad filter fails before any SQL is built.

        :type criteria: dict | None
        :rtype: list[FilterExpressionBase]
        :raises InvalidQueryError: malformed criteria
        :raises UnsupportedOperatorError: unsupported or unknown operator
        """
        if not criteria:
            return []
        if not isinstance(criteria, dict):
            raise InvalidQueryError('Filter criteria must be one of: null, object, function')

        expressions = []
        for key, value in criteria.items():
            if key in self._boolean_operators:
                expression = self._parse_boolean_operator(key, value)
                if expression is not None:
                    expressions.append(expression)
            elif key.startswith('$'):
                raise UnsupportedOperatorError(key)
            else:
                expressions.extend(self._parse_field(key, value))
        return expressions

    def _parse_field(self, field_name, criteria):
        """ { field: value } or { field: { $op: value, ... } } -> expressions """
        # A scalar, an array, or an object without operators: equality
        if not isinstance(criteria, dict) or not any(k.startswith('$') for k in criteria):
            criteria = {'$eq': criteria}

        for operator_str, value in criteria.items():
            if operator_str == '$not':
                negated = self._parse_criteria({field_name: value})
                if not negated:
                    raise InvalidQueryError('Filter: {}: $not has nothing to negate'.format(field_name))
                yield self._BOOLEAN_EXPRESSION_CLS('$not', negated)
                continue
            if operator_str in self._operators_ignored:
                continue

            operator_lambda = self._lookup_operator(operator_str, field_name)
            self._validate_operator_argument(operator_str, field_name, value)
            yield self._FIELD_EXPRESSION_CLS(self.grammar, self.document,
                                             field_name, operator_str, operator_lambda, value)

    def _parse_boolean_operator(self, op, criteria):
        """ { $or: [ {...}, {...} ] }, or { $not: {...} }

        :return: The expression, or None for an empty list
        """
        if op == '$not':
            if not isinstance(criteria, dict):
                raise InvalidQueryError('Filter: $not argument must be an object')
            return self._BOOLEAN_EXPRESSION_CLS(op, self._parse_criteria(criteria))

        if not isinstance(criteria, (list, tuple)):
            raise InvalidQueryError('Filter: {} argument must be a list'.format(op))
        if not criteria:
            return None
        return self._BOOLEAN_EXPRESSION_CLS(op, [self._parse_criteria(c) for c in criteria])

    def _lookup_operator(self, operator_str, field_name):
        """ Find the implementation of an operator: built-in, or from `extra_operators`

        :raises UnsupportedOperatorError
        """
        if operator_str in self._operators_unsupported:
            raise UnsupportedOperatorError(operator_str, field_name, self._operators_unsupported[operator_str])

        implementation = self._operators.get(operator_str) or self._extra_operators.get(operator_str)
        if implementation is None:
            raise UnsupportedOperatorError(operator_str, field_name)
        return implementation

    def _validate_operator_argument(self, operator_str, field_name, value):
        """ :raises InvalidQueryError: the operand does not fit the operator """
        def fail(requirement):
            raise InvalidQueryError('Filter: {} {} for field `{}`'.format(operator_str, requirement, field_name))

        is_int = lambda v: isinstance(v, int) and not isinstance(v, bool)

        if operator_str in self._operators_require_array_value and not is_array(value):
            fail('argument must be an array')
        if operator_str in self._operators_require_scalar_value and not is_scalar(value):
            fail('argument must be a scalar')
        if operator_str == '$size' and not is_int(value):
            fail('argument must be an integer')
        if operator_str == '$mod':
            if not value or not is_int(value[0]):
                fail('divisor must be an integer')
            if value[0] == 0:
                fail('divisor can not be zero')

    def compile_statement(self):
        """ The WHERE condition

        :return: The condition, or None when there's nothing to filter by
        :rtype: sqlalchemy.sql.elements.ClauseElement | None
        """
        if not self.expressions:
            return None
        return self._BOOLEAN_EXPRESSION_CLS.sql_anded_together([e.compile_expression() for e in self.expressions])

    def alter_query(self, query):
        # No "WHERE true" for empty criteria
        if self.expressions:
            query = query.where(self.compile_statement())
        return query
