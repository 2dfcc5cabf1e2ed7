import re

from sqlalchemy.dialects import mysql, postgresql as pg
from sqlalchemy.schema import CreateTable, DropTable

from mongojson.codec import json_encode


def stmt2sql(stmt, dialect=None, *, literal: bool = True):
    """ Convert an SqlAlchemy statement into a string

        Values are rendered inline, unless `literal=False`
    """
    query = stmt.compile(
        dialect=dialect or pg.dialect(),
        compile_kwargs={
            'literal_binds': literal,
        }
    )
    return str(query)


def mysql_dialect():
    return mysql.dialect()


def pg_dialect():
    return pg.dialect()


class TestQueryStringsMixin:
    """ unittest mixin that will help testing query strings """

    #: The dialect to compile statements with
    dialect = None

    def assertQuery(self, qs, *expected_lines):
        """ Test a query piece by piece

            SqlAlchemy may put parentheses around expressions here and there.
            Therefore, a query is not compared as a whole: every expected piece has to be found in it.

            :param qs: statement | query string
            :param expected_lines: the query, separated into pieces
        """
        if not isinstance(qs, str):
            qs = stmt2sql(qs, self.dialect)

        try:
            expected_lines = '\n'.join(expected_lines)

            for line in expected_lines.splitlines():
                self.assertIn(line.strip().rstrip(','), qs)

            return qs
        except:
            print(qs)
            raise

    def assertNotInQuery(self, qs, *unexpected):
        if not isinstance(qs, str):
            qs = stmt2sql(qs, self.dialect)
        for piece in unexpected:
            self.assertNotIn(piece, qs)
        return qs


class FakeResult:
    """ A result of FakeConnection.execute() """

    def __init__(self, rows=(), rowcount=0):
        self.rows = list(rows)
        self.rowcount = rowcount
        self.closed = False

    def __iter__(self):
        return iter(self.rows)

    def first(self):
        return self.rows[0] if self.rows else None

    def scalar(self):
        row = self.first()
        return row[0] if row is not None else None

    def fetchall(self):
        return list(self.rows)

    def close(self):
        self.closed = True


class FakeConnection:
    """ A connection that records statements instead of executing them

        It knows a little bit about tables: which exist, which are created and dropped.
        Every SELECT returns all `documents`, every write statement affects `rowcount` rows.
    """

    def __init__(self, dialect, tables=(), documents=(), rowcount=1):
        self.dialect = dialect
        #: Names of existing tables
        self.tables = set(tables)
        #: Documents returned by every SELECT
        self.documents = list(documents)
        #: Rows affected by every write
        self.rowcount = rowcount
        #: The log of executed SQL
        self.executed = []
        #: Results of SELECT statements
        self.results = []
        #: Has close() been called?
        self.closed = False

    def execute(self, statement):
        sql = stmt2sql(statement, self.dialect).strip()
        self.executed.append(sql)

        # DDL
        if isinstance(statement, CreateTable):
            self.tables.add(statement.element.name)
            return FakeResult()
        if isinstance(statement, DropTable):
            self.tables.discard(statement.element.name)
            return FakeResult()

        # Table existence
        if sql.startswith('SHOW TABLES') or 'to_regclass' in sql:
            name = self._unescape_table_name(statement.compile(dialect=self.dialect).params['table_name'])
            return FakeResult([(name,)] if name in self.tables else [] if sql.startswith('SHOW') else [(None,)])

        # Rename
        m = re.match(r'(?:RENAME TABLE|ALTER TABLE) (\S+) (?:TO|RENAME TO) (\S+)', sql)
        if m:
            old, new = (self._unescape_table_name(n) for n in m.groups())
            self.tables.discard(old)
            self.tables.add(new)
            return FakeResult()

        # Reading
        if sql.startswith('SELECT count(*)'):
            return FakeResult([(len(self.documents),)])
        if sql.startswith('SELECT'):
            result = FakeResult([(json_encode(d),) for d in self.documents])
            self.results.append(result)
            return result

        # Writing
        return FakeResult(rowcount=self.rowcount)

    @staticmethod
    def _unescape_table_name(name):
        name = re.sub(r'\\(.)', r'\1', name)
        return name.strip('`"')

    def close(self):
        self.closed = True

    def statements(self, prefix):
        """ Executed statements that start with a prefix """
        return [sql for sql in self.executed if sql.startswith(prefix)]
