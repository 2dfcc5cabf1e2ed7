"""
### Count Operation
`count=True` turns the query into `SELECT COUNT(*)`: the number of matching documents instead of the documents.

Sorting, projection, and slicing make no sense for a count, and are dropped from the Query Object.
"""

from sqlalchemy import func

from .base import MongoQueryHandlerBase
from ..exc import InvalidQueryError


class MongoCount(MongoQueryHandlerBase):
    """ Counting documents: count=True """

    query_object_section_name = 'count'

    #: Query Object keys that are dropped when counting
    IGNORED_WHEN_COUNTING = ('sort', 'project', 'skip', 'limit')

    def __init__(self, grammar, document):
        super(MongoCount, self).__init__(grammar, document)

        # On input
        self.count = None

    def input_prepare_query_object(self, query_object):
        if query_object.get('count'):
            for key in self.IGNORED_WHEN_COUNTING:
                query_object.pop(key, None)
        return query_object

    def input(self, count=None):
        super(MongoCount, self).input(count)
        if count is not None and not isinstance(count, int):
            raise InvalidQueryError('count must be a boolean')

        self.count = bool(count)

        # SQL can't count rows a Python function would match
        if self.count and self.mongoquery is not None and self.mongoquery.predicate is not None:
            raise InvalidQueryError('count can not be used with a filter function: use Collection.count()')
        return self

    def alter_query(self, query):
        if not self.count:
            return query

        # _from_query() selects from an explicit FROM: it survives the column swap
        return query.with_only_columns(func.count()).order_by(None)
