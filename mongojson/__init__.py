"""
MongoJSON is a document storage that lets you use MySQL or PostgreSQL JSON columns
like a MongoDB database.

Every collection is a table with a JSON column, every document is a row.
You query documents with MongoDB-style Query Objects:

```python
from mongojson import Driver

driver = Driver(dict(driver='mysql', dbname='app', username='app', password='secret'))
users = driver.get_collection('users')

users.insert_one({'name': 'John', 'age': 18, 'tags': ['admin']})
users.find(
    {'age': {'$gte': 18}, 'tags': {'$has': 'admin'}},  # filter
    projection={'name': 1},
    sort={'age': -1},
    limit=10,
).to_list()
```

The Query Object is compiled into SQL using SqlAlchemy.
Filters that can't be expressed in SQL can be given as Python functions: they're run against loaded documents.

Supported: MySQL 8.0+, PostgreSQL 9.4+
"""

# Errors
from .exc import *

# SQL grammars: the differences between databases
from .dialects import DialectGrammar, MysqlGrammar, PostgresqlGrammar, get_grammar

# Query Object handlers: each turns one key of a Query Object into a part of a SELECT
from . import handlers

# A Query Object against a collection table
from .query import MongoQuery

# Storage: driver, collections, cursors
from .driver import Driver
from .collection import Collection
from .cursor import Cursor
from .schema import SchemaManager

# Helpers
from .util import Reusable, DriverSettingsDict, ObjectIdGenerator
