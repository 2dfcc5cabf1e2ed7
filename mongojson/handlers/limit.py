"""
### Slice Operation
`skip` and `limit` page through the results: `LIMIT .. OFFSET ..`.

Both are optional non-negative integers; `0` and `None` mean "not set".

```python
dict(skip=20, limit=10)  # the third page of 10
```

`OFFSET` alone is not valid on every database, so `skip` without a `limit` uses the grammar's `LIMIT_SENTINEL`.

With a Python filter function, SQL can't know which rows match, so the slice is applied by the Cursor instead.
"""

from .base import MongoQueryHandlerBase
from ..exc import InvalidQueryError


class MongoLimit(MongoQueryHandlerBase):
    """ Pagination: 'skip' & 'limit' """

    query_object_section_name = 'limit'

    def __init__(self, grammar, document, max_items=None):
        """
        :param max_items: Upper bound on `limit`. Applies to queries without a `limit` as well.
        """
        super(MongoLimit, self).__init__(grammar, document)

        self.max_items = max_items
        assert self.max_items is None or self.max_items > 0

        #: OFFSET, or None
        self.skip = None
        #: LIMIT, or None
        self.limit = None

    def input_prepare_query_object(self, query_object):
        # Two Query Object keys, one handler: 'limit' receives a (skip, limit) pair
        skip, limit = query_object.pop('skip', None), query_object.pop('limit', None)
        if skip is not None or limit is not None:
            query_object['limit'] = (skip, limit)

        # A count has no use for max_items. This handler is a private copy, so it's fine to change it.
        if query_object.get('count'):
            self.max_items = None

        return query_object

    def input(self, skip=None, limit=None):
        if isinstance(skip, tuple):
            skip, limit = skip

        super(MongoLimit, self).input((skip, limit))

        for name, value in (('skip', skip), ('limit', limit)):
            if not self._is_valid_number(value):
                raise InvalidQueryError('{} must be a non-negative integer, or null'.format(name))

        skip, limit = skip or None, limit or None
        if self.max_items:
            limit = min(limit or self.max_items, self.max_items)

        self.skip, self.limit = skip, limit
        return self

    @staticmethod
    def _is_valid_number(value):
        return value is None or (isinstance(value, int) and not isinstance(value, bool) and value >= 0)

    @property
    def has_limit(self):
        return self.limit is not None or self.skip is not None

    @property
    def in_python(self):
        """ Whether the Cursor slices the documents: the case of a Python filter """
        return self.mongoquery is not None and self.mongoquery.predicate is not None

    def alter_query(self, query):
        if self.in_python:
            return query

        if self.skip:
            return query.offset(self.skip).limit(self.limit or self.grammar.LIMIT_SENTINEL)
        if self.limit:
            return query.limit(self.limit)
        return query

    def get_final_input_value(self):
        return dict(skip=self.skip, limit=self.limit)
