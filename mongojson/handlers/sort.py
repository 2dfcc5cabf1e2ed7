"""
### Sort Operation
`sort` is the `ORDER BY` of the query. Fields use the dot-notation, and are compared as JSON values:
numbers as numbers, strings as strings.

Accepted forms:

```python
{'age': -1, 'name': 1}      # field -> direction; key order is the precedence
['age-', 'name+', 'email']  # '+' is ASC, '-' is DESC, no suffix is ASC
'age- name+ email'          # the same, as a string
[('age', -1), ('name', 1)]  # pairs
```
"""

from .base import MongoQueryHandlerBase
from ..exc import InvalidQueryError


class MongoSort(MongoQueryHandlerBase):
    """ ORDER BY document fields """

    query_object_section_name = 'sort'

    #: Direction suffixes of the list syntax
    SUFFIXES = {'+': +1, '-': -1}

    def __init__(self, grammar, document):
        super(MongoSort, self).__init__(grammar, document)

        #: Ordered {field: +1 | -1}
        self.sort_spec = None

    def _parse(self, spec) -> dict:
        if not spec:
            return {}

        if isinstance(spec, str):
            spec = spec.split()

        if isinstance(spec, (list, tuple)):
            try:
                spec = dict(map(self._parse_item, spec))
            except (TypeError, ValueError, IndexError):
                raise InvalidQueryError('sort list items must be "field[+-]" strings or (field, direction) pairs')

        if not isinstance(spec, dict):
            raise InvalidQueryError('sort must be an object, a list, or a string; got {}'.format(type(spec).__name__))

        for field, direction in spec.items():
            if isinstance(direction, bool) or direction not in (-1, +1):
                raise InvalidQueryError('sort direction for "{}" must be +1 or -1'.format(field))

        return spec

    @classmethod
    def _parse_item(cls, item):
        if not isinstance(item, str):
            field, direction = item
            return field, direction
        if item[-1] in cls.SUFFIXES:
            return item[:-1], cls.SUFFIXES[item[-1]]
        return item, +1

    def input(self, sort_spec):
        super(MongoSort, self).input(sort_spec)
        self.sort_spec = self._parse(sort_spec)
        return self

    def merge(self, sort_spec):
        """ Add more fields, with a lower precedence """
        self.sort_spec.update(self._parse(sort_spec))
        return self

    def compile_columns(self):
        return [
            self.grammar.json_value(self.document, field).desc() if direction == -1 else
            self.grammar.json_value(self.document, field).asc()
            for field, direction in self.sort_spec.items()
        ]

    def alter_query(self, query):
        if not self.sort_spec:
            return query
        return query.order_by(*self.compile_columns())

    def get_final_input_value(self):
        return dict(self.sort_spec)
