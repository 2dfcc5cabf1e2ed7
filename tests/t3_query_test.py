import unittest

from mongojson import MongoQuery, Reusable, exc
from mongojson.dialects import MysqlGrammar, PostgresqlGrammar

from .util import TestQueryStringsMixin, stmt2sql, mysql_dialect, pg_dialect


class QueryTest(TestQueryStringsMixin, unittest.TestCase):
    """ MongoQuery: putting handlers together """

    longMessage = True
    maxDiff = None

    def setUp(self):
        self.dialect = pg_dialect()
        self.grammar = PostgresqlGrammar(self.dialect)

    def mq(self, table_name='users', **settings):
        return MongoQuery(self.grammar, table_name, settings)

    def test_empty_query(self):
        q = self.mq().query().end()
        self.assertQuery(q,
                         'SELECT CAST(users.document AS TEXT) AS document',
                         'FROM users')
        self.assertNotInQuery(q, 'WHERE', 'ORDER BY', 'LIMIT')

    def test_full_query(self):
        mq = self.mq().query(
            filter={'age': {'$gte': 18}, 'tags': {'$has': 'admin'}},
            sort={'name': 1},
            project={'name': 1},
            skip=10,
            limit=5,
        )
        self.assertQuery(mq.end(),
                         'SELECT CAST(users.document AS TEXT) AS document',
                         'FROM users',
                         'WHERE',
                         "jsonb_typeof(users.document #> '{age}') = 'number'",
                         ">= 18",
                         "(users.document #> '{tags}') ? 'admin'",
                         'ORDER BY',
                         "users.document #> '{name}'",
                         'LIMIT 5 OFFSET 10')

        # Projection is applied in Python
        self.assertEqual(mq.pluck_document({'_id': 'a', 'name': 'John', 'age': 18}),
                         {'_id': 'a', 'name': 'John'})

    def test_table_name_quoting(self):
        q = self.mq('db/users').query(filter={'a': 'b'}).end()
        self.assertQuery(q,
                         'FROM "db/users"',
                         "\"db/users\".document #>> '{a}'")

    def test_mysql(self):
        dialect = mysql_dialect()
        mq = MongoQuery(MysqlGrammar(dialect), 'users')
        q = mq.query(filter={'name': 'John'}, sort={'age': -1}, skip=3).end()
        self.assertQuery(stmt2sql(q, dialect),
                         'SELECT users.document',
                         'FROM users',
                         "WHERE (users.document -> '$.name') = 'John'",
                         "users.document -> '$.age'",
                         'DESC',
                         'LIMIT 3, 18446744073709551615')

    def test_count(self):
        mq = self.mq().query(filter={'name': 'John'}, sort={'name': 1}, skip=1, limit=2, count=True)
        q = mq.end()
        self.assertQuery(q,
                         'SELECT count(*) AS count_1',
                         'FROM users',
                         "WHERE (users.document #>> '{name}') = 'John'")
        self.assertNotInQuery(q, 'ORDER BY', 'LIMIT', 'OFFSET')

    def test_end_count(self):
        mq = self.mq().query(filter={'name': 'John'}, sort={'name': 1}, limit=2)
        self.assertQuery(mq.end_count(),
                         'SELECT count(*) AS count_1',
                         'FROM users',
                         "WHERE (users.document #>> '{name}') = 'John'")
        self.assertNotInQuery(mq.end_count(), 'ORDER BY', 'LIMIT')

    def test_predicate(self):
        predicate = lambda doc: True
        mq = self.mq().query(filter=predicate, skip=1, limit=2)
        self.assertIs(mq.predicate, predicate)

        # Neither WHERE, nor LIMIT: the predicate has to see every document
        self.assertNotInQuery(mq.end(), 'WHERE', 'LIMIT', 'OFFSET')

        # Skip & limit are still known
        self.assertEqual(mq.handler_limit.get_final_input_value(), {'skip': 1, 'limit': 2})
        self.assertTrue(mq.handler_limit.in_python)

    def test_invalid_keys(self):
        with self.assertRaises(exc.InvalidQueryError) as e:
            self.mq().query(filter={}, group=['a'])
        self.assertIn('group', str(e.exception))

    def test_invalid_sections(self):
        # Errors are raised before any SQL is generated
        with self.assertRaises(exc.UnsupportedOperatorError):
            self.mq().query(filter={'a': {'$fuzzy': 'x'}})
        with self.assertRaises(exc.InvalidQueryError):
            self.mq().query(sort={'a': 0})
        with self.assertRaises(exc.InvalidQueryError):
            self.mq().query(limit=-1)

    def test_reusable(self):
        mq = Reusable(self.mq())

        q1 = mq.query(filter={'a': 1}).end()
        q2 = mq.query(filter={'b': 2}).end()
        self.assertQuery(q1, "'{a}'")
        self.assertNotInQuery(q1, "'{b}'")
        self.assertQuery(q2, "'{b}'")
        self.assertNotInQuery(q2, "'{a}'")

        # Without Reusable(), input can't be given twice
        plain = self.mq()
        plain.query(filter={'a': 1})
        with self.assertRaises(RuntimeError):
            plain.query(filter={'a': 1})

    def test_settings(self):
        # max_items goes to MongoLimit
        mq = self.mq(max_items=100).query()
        self.assertEqual(mq.handler_limit.limit, 100)
        self.assertQuery(mq.end(), 'LIMIT 100')

        # Not when counting
        mq = self.mq(max_items=100).query(count=True)
        self.assertNotInQuery(mq.end(), 'LIMIT')

        # default_projection goes to MongoProject
        mq = self.mq(default_projection={'name': 1}).query()
        self.assertEqual(mq.pluck_document({'_id': 'a', 'name': 'John', 'age': 1}), {'_id': 'a', 'name': 'John'})

        # extra_operators go to MongoFilter
        mq = self.mq(extra_operators={'$empty': lambda e, val: e.json_text == ''}).query(filter={'a': {'$empty': 1}})
        self.assertQuery(mq.end(), "(users.document #>> '{a}') = ''")

    def test_count_function_filter(self):
        # SQL can't count what a Python function matches
        with self.assertRaises(exc.InvalidQueryError):
            self.mq().query(filter=lambda d: d['age'] > 100, count=True)

        # Without count, the function is fine
        mq = self.mq().query(filter=lambda d: d['age'] > 100)
        self.assertNotInQuery(mq.end(), 'WHERE', 'count')

    def test_invalid_settings(self):
        with self.assertRaises(KeyError):
            self.mq(max_itemz=100)

    def test_disabled_handlers(self):
        mq = Reusable(self.mq(sort_enabled=False, filter_enabled=False))

        # No input: fine
        mq.query(limit=1).end()

        # Input: error
        with self.assertRaises(exc.DisabledError):
            mq.query(sort={'a': 1})
        with self.assertRaises(exc.DisabledError):
            mq.query(filter={'a': 1})

        # Ask the query whether a handler is on
        self.assertFalse(mq.is_handler_enabled('sort'))
        self.assertTrue(mq.is_handler_enabled('limit'))

        # DisabledError is an InvalidQueryError
        self.assertTrue(issubclass(exc.DisabledError, exc.InvalidQueryError))
