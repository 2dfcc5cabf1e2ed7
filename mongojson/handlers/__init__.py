"""
Query Objects use the language of [MongoDB Query Operators](https://docs.mongodb.com/manual/reference/operator/query/):
if you can query a MongoDB collection, you can query a MongoJSON collection.

Query Object Syntax
-------------------

A Query Object is a dict; every key is optional:

* `filter`: which documents match. See [Filter Operation](#filter-operation)
* `project`: which fields of a document to return. See [Project Operation](#project-operation)
* `sort`: the order of documents. See [Sort Operation](#sort-operation)
* `skip`, `limit`: pagination. See [Slice Operation](#slice-operation)
* `count`: return the number of matching documents instead. See [Count Operation](#count-operation)

```python
dict(
    filter={'sex': 'female', 'age': {'$gte': 18}},
    project=['name', 'age'],
    sort={'age': 1},
    skip=10,
    limit=100,
)
```

Each key has a handler class in this package. Handlers know nothing about a particular database:
they ask a `DialectGrammar` how to reach into a JSON column.
"""

from .project import MongoProject
from .sort import MongoSort
from .filter import MongoFilter, \
    FilterExpressionBase, FilterBooleanExpression, FilterFieldExpression
from .limit import MongoLimit
from .count import MongoCount
