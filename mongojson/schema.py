import logging

from sqlalchemy import exc as sa_exc
from sqlalchemy.schema import CreateTable, CreateIndex, DropTable

from .exc import DriverError

logger = logging.getLogger(__name__)


class SchemaManager:
    """ Creates, drops, and renames collection tables

        A collection table has:
        * `id`: an auto-incrementing primary key
        * `document`: the JSON document
        * whatever the grammar adds for fast `_id` lookups: virtual columns, expression indexes
    """

    def __init__(self, connection, grammar):
        """
        :type connection: sqlalchemy.engine.Connection
        :type grammar: mongojson.dialects.DialectGrammar
        """
        self.connection = connection
        self.grammar = grammar

    def table_exists(self, table_name: str) -> bool:
        row = self.connection.execute(self.grammar.exists_check_sql(table_name)).first()
        return self.grammar.table_exists(row)

    def ensure_table(self, table_name: str) -> bool:
        """ Create the table, unless it exists already

        :return: whether the table has been created
        :raises DriverError: failed to check or to create the table
        """
        try:
            if self.table_exists(table_name):
                return False

            tbl = self.grammar.define_table(table_name)
            self.connection.execute(CreateTable(tbl))
            for index in tbl.indexes:
                self.connection.execute(CreateIndex(index))
        except sa_exc.DBAPIError as e:
            raise DriverError('Failed to create table "{}": {}'.format(table_name, e.orig)) from e

        logger.info('Created collection table %r', table_name)
        return True

    def drop_table(self, table_name: str):
        self.connection.execute(DropTable(self.grammar.define_table(table_name)))
        logger.info('Dropped collection table %r', table_name)

    def rename_table(self, table_name: str, new_table_name: str):
        self.connection.execute(self.grammar.rename_table_sql(table_name, new_table_name))
        logger.info('Renamed collection table %r to %r', table_name, new_table_name)
