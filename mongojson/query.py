from copy import copy

from sqlalchemy import select, func

from . import handlers
from .exc import InvalidQueryError
from .util import MongoQuerySettingsHandler


class MongoQuery(object):
    """ A Query Object compiled against one collection table

        Every Query Object key has its own handler: a MongoQueryHandlerBase subclass.
        MongoQuery feeds each handler its section, and lets every handler alter the SELECT statement.

        Example:

            mq = MongoQuery(grammar, 'users', dict(max_items=100))
            stmt = mq.query(filter={'age': {'$gte': 18}}, sort={'name': 1}).end()
            for row in connection.execute(stmt):
                document = mq.pluck_document(json_decode(row[0]))
    """

    def __init__(self, grammar, table_name, handler_settings=None):
        """
        :param grammar: SQL grammar for the database
        :type grammar: mongojson.dialects.DialectGrammar
        :param table_name: The collection table
        :param handler_settings: A flat dict of settings for all handlers.
            Each handler picks the keys that match its __init__() keyword arguments:

                max_items=None           # limit: LIMIT forced onto every query
                default_projection=None  # project: used when no projection is given
                extra_operators=None     # filter: {'$name': lambda expression, value: ...}

            Any handler can be switched off with `<name>_enabled=False`: 'sort_enabled', 'filter_enabled', etc.
            Unknown keys raise a KeyError.
        :type handler_settings: dict | None
        """
        self._grammar = grammar
        self._table = grammar.collection_table(table_name)
        self._document = self._table.c[grammar.DOCUMENT_COLUMN]

        self._handler_settings = MongoQuerySettingsHandler(handler_settings or {})
        self._init_query_object_handlers()

    def __copy__(self):
        """ Copy with fresh handlers: a copy can receive a Query Object of its own """
        cls = self.__class__
        clone = cls.__new__(cls)
        clone.__dict__.update(self.__dict__)

        for name in self.HANDLER_NAMES:
            attr = 'handler_' + name
            setattr(clone, attr, copy(getattr(self, attr)))

        return clone

    @property
    def table(self):
        return self._table

    @property
    def document(self):
        return self._document

    @property
    def predicate(self):
        """ The Python filter function, when the filter was given as one """
        return self.handler_filter.predicate

    def is_handler_enabled(self, handler_name):
        """ Whether a handler accepts input: see `<name>_enabled` settings """
        return self._handler_settings.is_handler_enabled(handler_name)

    def query(self, **query_object):
        """ Receive a Query Object

        Keys: filter, project, sort, skip, limit, count

        :raises InvalidQueryError: an unknown key, or a malformed section
        :raises DisabledError: input for a disabled handler
        :rtype: MongoQuery
        """
        for handler in self._handlers():
            query_object = handler.input_prepare_query_object(query_object)

        unknown = set(query_object) - set(self.HANDLER_NAMES)
        if unknown:
            raise InvalidQueryError('Unknown Query Object operations: {}'.format(', '.join(sorted(unknown))))

        # Handlers get their input even when there is none: they have defaults to apply
        for handler in self._handlers():
            name = handler.query_object_section_name
            value = query_object.get(name)
            if value is not None:
                self._handler_settings.raise_if_not_handler_enabled(name)

            handler.with_mongoquery(self).input(value)

        return self

    def end(self):
        """ The SELECT statement for the documents

        It has one column, 'document': the JSON document as text.

        :rtype: sqlalchemy.sql.Select
        """
        stmt = self._from_query()
        for handler in self._handlers():
            stmt = handler.alter_query(stmt)
        return stmt

    def end_count(self):
        """ SELECT COUNT(*) with the same filter

        :rtype: sqlalchemy.sql.Select
        """
        stmt = self.handler_filter.alter_query(self._from_query())
        return stmt.with_only_columns(func.count())

    def pluck_document(self, document):
        """ Apply the projection to a loaded document """
        return self.handler_project.pluck_document(document)

    def __repr__(self):
        return 'MongoQuery({})'.format(self._table.name)

    # region Handlers

    # Subclasses replace handler classes here
    _QO_HANDLER_PROJECT = handlers.MongoProject
    _QO_HANDLER_SORT = handlers.MongoSort
    _QO_HANDLER_FILTER = handlers.MongoFilter
    _QO_HANDLER_LIMIT = handlers.MongoLimit
    _QO_HANDLER_COUNT = handlers.MongoCount

    #: Handler names, in the order they alter the statement.
    #: 'limit' goes after 'sort'; 'count' is the last one because it replaces the columns.
    HANDLER_NAMES = ('project', 'sort', 'filter', 'limit', 'count')

    handler_project = None  # type: mongojson.handlers.MongoProject
    handler_sort = None  # type: mongojson.handlers.MongoSort
    handler_filter = None  # type: mongojson.handlers.MongoFilter
    handler_limit = None  # type: mongojson.handlers.MongoLimit
    handler_count = None  # type: mongojson.handlers.MongoCount

    def _handlers(self):
        return [getattr(self, 'handler_' + name) for name in self.HANDLER_NAMES]

    def _init_query_object_handlers(self):
        for name in self.HANDLER_NAMES:
            handler_cls = getattr(self, '_QO_HANDLER_' + name.upper())
            kwargs = self._handler_settings.get_settings(name, handler_cls)
            setattr(self, 'handler_' + name, handler_cls(self._grammar, self._document, **kwargs))

        # Every handler has picked its settings by now: leftovers are typos
        self._handler_settings.raise_if_invalid_handler_settings()

    # endregion

    def _from_query(self):
        """ SELECT <document as text> FROM <table> """
        return select(
            self._grammar.document_text(self._document).label(self._grammar.DOCUMENT_COLUMN)
        ).select_from(self._table)
