from sqlalchemy import Integer, Text, MetaData, Table, Column
from sqlalchemy.sql import table, column, literal, literal_column

from ..codec import is_array
from ..exc import InvalidQueryError


class DialectGrammar:
    """ Everything that makes SQL differ between the supported JSON backends

        The filter compiler, the query builder and the schema manager are written once,
        against this interface; every supported database family gets a subclass.

        Naming used throughout:

        * `document`: the JSON column of a collection table (an SqlAlchemy column)
        * `field_name`: a dotted field name: 'a.b.c'
        * "JSON value": a JSON-typed extraction (`->`, `#>`): type-aware comparisons & sorting
        * "JSON text": a text extraction (`->>`, `#>>`): LIKE, regexps, casts
    """

    #: Grammar names, as used in `Driver(options=dict(driver=...))`
    names = ()

    #: SqlAlchemy drivername to build connection URLs with
    drivername = None

    #: Default server port
    default_port = None

    #: Minimum server version: (major, minor, patch)
    min_server_version = None

    #: The LIMIT to use when there is an OFFSET but no LIMIT: OFFSET alone is not portable
    LIMIT_SENTINEL = None

    #: Name of the JSON column
    DOCUMENT_COLUMN = 'document'

    #: Name of the auto-incrementing integer column
    IDENTITY_COLUMN = 'id'

    def __init__(self, dialect):
        """ Init the grammar

        :param dialect: SqlAlchemy dialect of the connection
        :type dialect: sqlalchemy.engine.interfaces.Dialect
        """
        self.dialect = dialect

    def __repr__(self):
        return '{}({})'.format(self.__class__.__name__, self.dialect.name)

    @classmethod
    def connect_query(cls, settings) -> dict:
        """ Extra URL query parameters for the connection

        :type settings: mongojson.util.DriverSettingsDict
        """
        return {}

    # region PathResolver

    def path_expression(self, field_name: str) -> str:
        """ Translate a dotted field name into a JSON path this dialect understands

            The path is not validated: a missing path is just NULL when extracted.
        """
        raise NotImplementedError()

    def path(self, field_name: str):
        """ The JSON path as an inline SQL string literal

            Inline, because MySQL won't accept a placeholder on the right side of `->`,
            and because PostgreSQL only uses an expression index when the expression matches exactly.
        """
        return literal_column(self.quote_string(self.path_expression(field_name)))

    def quote_string(self, value: str) -> str:
        """ Quote a string to be embedded into SQL """
        return "'{}'".format(value.replace("'", "''"))

    # endregion

    # region Extraction

    def json_value(self, document, field_name: str):
        """ JSON-typed value at a path """
        raise NotImplementedError()

    def json_text(self, document, field_name: str):
        """ Value at a path, as text """
        raise NotImplementedError()

    def json_nullable(self, document, field_name: str):
        """ Value at a path that is NULL both when the path is absent and when it holds a JSON null """
        raise NotImplementedError()

    def comparable(self, document, field_name: str, value):
        """ Prepare both sides of a scalar comparison: ($eq, $gt, $in, etc)

        :param value: a scalar, or a list of scalars (for $in, $nin)
        :return: (column expression, value expression or list of value expressions)
        """
        raise NotImplementedError()

    # endregion

    # region ValueCodec

    def quote_literal(self, value):
        """ Turn a value into an SQL literal that compares correctly against extracted JSON

        Arrays give a list of literals.

        :raises InvalidQueryError: the value can't be used as a literal
        """
        if is_array(value):
            return self.quote_literals(value)
        return self._quote_scalar(value)

    def quote_literals(self, values):
        return [self._quote_scalar(v) for v in values]

    def _quote_scalar(self, value):
        raise NotImplementedError()

    @staticmethod
    def _stringify(value) -> str:
        """ Convert an object with its own string representation to str

        :raises InvalidQueryError: the object has no string representation of its own
        """
        if type(value).__str__ is object.__str__ or is_array(value) or isinstance(value, dict):
            raise InvalidQueryError('Invalid value type {} for a literal'.format(type(value).__name__))
        return str(value)

    def json_constructor(self, value):
        """ Build an SQL expression that constructs the given JSON value on the server

            Lists and dicts become nested array/object constructor calls.
        """
        raise NotImplementedError()

    def contains(self, document, field_name: str, value):
        """ Test that a scalar is an element of the array (or a key of the object) at a path """
        raise NotImplementedError()

    def contains_all(self, document, field_name: str, values):
        """ Test that every value is an element of the array at a path """
        raise NotImplementedError()

    def array_length(self, document, field_name: str):
        """ Length of the array at a path """
        raise NotImplementedError()

    # endregion

    # region Tables

    def collection_table(self, table_name: str):
        """ A lightweight table clause to build DML statements on """
        return table(table_name,
                     column(self.IDENTITY_COLUMN, Integer),
                     column(self.DOCUMENT_COLUMN, Text))

    def define_table(self, table_name: str, metadata: MetaData = None) -> Table:
        """ Full table definition for CREATE TABLE

            Subclasses add virtual columns & indexes
        """
        return Table(table_name, metadata or MetaData(),
                     Column(self.IDENTITY_COLUMN, Integer, primary_key=True, autoincrement=True),
                     Column(self.DOCUMENT_COLUMN, self.document_type(), nullable=False),
                     )

    def document_type(self):
        """ SqlAlchemy type of the document column in DDL """
        raise NotImplementedError()

    def document_text(self, document):
        """ Select the document column as text """
        return document

    def document_value(self, data: str):
        """ A JSON text value to write into the document column """
        return literal(data, Text)

    def identity_equals(self, tbl, doc_id: str):
        """ Look a document up by its `_id`, using the index """
        raise NotImplementedError()

    def exists_check_sql(self, table_name: str):
        """ A statement that yields a non-empty first row when the table exists """
        raise NotImplementedError()

    @staticmethod
    def table_exists(row) -> bool:
        """ Interpret the first row of exists_check_sql() """
        return row is not None and row[0] is not None

    def rename_table_sql(self, table_name: str, new_table_name: str):
        raise NotImplementedError()

    def quote_identifier(self, identifier: str) -> str:
        return self.dialect.identifier_preparer.quote_identifier(identifier)

    # endregion
