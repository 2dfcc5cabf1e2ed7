class MongoQueryHandlerBase:
    """ Base for Query Object section handlers

        A handler owns one key of the Query Object ('filter', 'sort', ...).
        Its life cycle:

        1. __init__(): grammar, the JSON column, and settings. No input yet.
        2. input(): receive the section value, validate it, keep the parsed form.
        3. alter_query(): apply the parsed form to a SELECT statement.

        A handler accepts input only once. To reuse a configured handler, copy() it,
        or wrap it into Reusable().
    """

    #: The Query Object key this handler receives
    query_object_section_name = None

    def __init__(self, grammar, document):
        """
        :param grammar: The SQL grammar of the database
        :type grammar: mongojson.dialects.DialectGrammar
        :param document: The JSON column of the collection table
        :type document: sqlalchemy.sql.expression.ColumnClause

        Subclasses: every keyword argument with a default value is a setting,
        and MongoQuery will feed it from `handler_settings` by name.
        """
        #: SQL grammar
        self.grammar = grammar
        #: The JSON column
        self.document = document

        #: Has input() been called?
        self.input_received = False
        #: The raw section value, as given
        self.input_value = None

        #: The MongoQuery this handler works for (if any)
        self.mongoquery = None

    def with_mongoquery(self, mongoquery):
        """ Attach to a MongoQuery, so that handlers can peek at each other

        :type mongoquery: mongojson.query.MongoQuery
        """
        self.mongoquery = mongoquery
        return self

    def __copy__(self):
        # Shallow: settings are shared, input is not received yet
        clone = object.__new__(self.__class__)
        clone.__dict__.update(self.__dict__)
        return clone

    def input_prepare_query_object(self, query_object: dict) -> dict:
        """ Rewrite the Query Object before any handler receives its input

        Handlers that care about other keys (e.g. 'count' drops 'sort') do it here.
        """
        return query_object

    def input(self, qo_value):
        """ Receive the Query Object section

        Subclasses call super() first, then validate & parse `qo_value`.

        :rtype: MongoQueryHandlerBase
        :raises InvalidQueryError
        """
        self.input_value = qo_value
        self.input_received = True

        # The instance is single-use from now on
        self.input = self._input_already_received
        return self

    def _input_already_received(self, *args, **kwargs):
        raise RuntimeError('{}.input() has already been called. '
                           'copy() the handler, or wrap it with Reusable()'
                           .format(self.__class__.__name__))

    def is_input_empty(self) -> bool:
        return not self.input_value

    def compile_columns(self):
        """ Column expressions for the statement (sort: ORDER BY columns)

        :rtype: list[sqlalchemy.sql.ColumnElement]
        """
        raise NotImplementedError()

    def compile_statement(self):
        """ A standalone SQL expression (filter: the WHERE condition) """
        raise NotImplementedError()

    def alter_query(self, query):
        """ Apply the parsed input to a SELECT statement

        :type query: sqlalchemy.sql.Select
        :rtype: sqlalchemy.sql.Select
        """
        raise NotImplementedError()

    def get_final_input_value(self):
        """ The input, normalized: after defaults and settings were applied """
        return self.input_value
