from copy import copy


class Reusable:
    """ Copy-on-access wrapper for handlers and queries

        Handlers and MongoQuery objects accept input only once.
        Configure one, wrap it, and every attribute access works on a fresh copy:

            project = Reusable(MongoProject(grammar, document, default_projection={'password': 0}))
            project.input({'name': 1})  # a copy receives the input; `project` stays clean

            query = Reusable(MongoQuery(grammar, 'users', dict(max_items=100)))
            stmt = query.query(filter={'age': 18}).end()
    """
    __slots__ = ('_wrapped',)

    def __init__(self, obj):
        self._wrapped = obj

    def __getattr__(self, name):
        return getattr(copy(self._wrapped), name)

    def __repr__(self):
        return 'Reusable({!r})'.format(self._wrapped)
