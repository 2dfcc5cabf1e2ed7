import logging

from .codec import json_decode
from .exc import CursorError

logger = logging.getLogger(__name__)


class Cursor:
    """ Lazy iterator over the documents of a query

        Nothing is executed until the iteration starts. A cursor can only be iterated once:

            unconsumed -> iterating -> exhausted

        For every row:
        1. the document is decoded,
        2. tested against the predicate (when the filter is a Python function),
        3. counted against skip & limit (again, when the filter is a function; otherwise, SQL has done it),
        4. projected.
        The order is important: a predicate wants the whole document.
    """

    UNCONSUMED = 'unconsumed'
    ITERATING = 'iterating'
    EXHAUSTED = 'exhausted'

    def __init__(self, connection, statement, mongoquery):
        """
        :param connection: The connection to execute the statement with
        :type connection: sqlalchemy.engine.Connection
        :param statement: The compiled SELECT statement
        :type statement: sqlalchemy.sql.Select
        :param mongoquery: The query the statement was built with: predicate, skip/limit, projection
        :type mongoquery: mongojson.query.MongoQuery
        """
        self._connection = connection
        self._statement = statement
        self._mongoquery = mongoquery
        self.state = self.UNCONSUMED

    def __iter__(self):
        if self.state != self.UNCONSUMED:
            raise CursorError('The cursor has already been iterated over')
        self.state = self.ITERATING
        return self._iterate()

    def _iterate(self):
        predicate = self._mongoquery.predicate
        limit_handler = self._mongoquery.handler_limit

        # When there is a predicate, skip & limit are ours to do
        if predicate is not None:
            skip, limit = limit_handler.skip or 0, limit_handler.limit
            logger.debug('Filtering %r with a Python function', self._mongoquery)
        else:
            skip, limit = 0, None

        matched = 0
        result = None
        try:
            result = self._connection.execute(self._statement)
            for row in result:
                document = json_decode(row[0])

                if predicate is not None:
                    if not predicate(document):
                        continue
                    matched += 1
                    if matched <= skip:
                        continue

                yield self._mongoquery.pluck_document(document)

                if limit and matched - skip >= limit:
                    break
        finally:
            if result is not None:
                result.close()
            self.state = self.EXHAUSTED

    def to_list(self):
        """ Load all documents """
        return list(self)

    to_array = to_list

    def first(self):
        """ Get the first document, or None """
        documents = iter(self)
        try:
            return next(documents, None)
        finally:
            documents.close()

    def count(self):
        """ Load all documents and count them """
        return len(self.to_list())

    def __repr__(self):
        return '{}({!r}, {})'.format(self.__class__.__name__, self._mongoquery, self.state)
