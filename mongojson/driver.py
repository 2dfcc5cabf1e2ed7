import logging

from sqlalchemy import create_engine, exc as sa_exc
from sqlalchemy.engine import URL, Engine

from .collection import Collection
from .dialects import get_grammar, grammar_class_for_name
from .exc import DriverError
from .schema import SchemaManager
from .util import DriverSettingsDict, generate_id

logger = logging.getLogger(__name__)


class Driver:
    """ Document storage on top of MySQL or PostgreSQL JSON columns

        Every collection is a table, every document is a row.

        Example:

            driver = Driver(dict(driver='pgsql', dbname='app', username='app', password='secret'))
            users = driver.get_collection('users')
            users.insert_one({'name': 'John', 'age': 18})
            users.find({'age': {'$gte': 18}}, sort={'name': 1}).to_list()

        One driver has one connection. It is not safe to share a driver between threads.
    """

    # The class to use for collections
    _COLLECTION_CLS = Collection

    def __init__(self, options=None, driver_options=None, connection=None, id_generator=None):
        """ Connect to the database

        :param options: Connection options: see `DriverSettingsDict`
        :type options: dict | DriverSettingsDict | None
        :param driver_options: Extra keyword arguments for `sqlalchemy.create_engine()`
        :type driver_options: dict | None
        :param connection: An open SqlAlchemy connection (or an engine) to use instead of connecting.
            When given, connection options in `options` are ignored.
        :type connection: sqlalchemy.engine.Connection | sqlalchemy.engine.Engine | None
        :param id_generator: A callable that generates `_id`s for new documents
        :type id_generator: Callable[[], str] | None
        :raises DriverError: bad options, can't connect, the database is not supported
        """
        try:
            self.settings = DriverSettingsDict.from_options(dict(options or {}))
        except KeyError as e:
            raise DriverError(e.args[0]) from e

        #: Settings for every MongoQuery
        self.query_settings = self.settings['query_settings'] or {}

        #: The callable that generates ids
        self.id_generator = id_generator or generate_id

        # Connect
        if connection is None:
            self._owns_connection = True
            self.connection = self._connect(self.settings, driver_options or {})
        elif isinstance(connection, Engine):
            self._owns_connection = True
            self.connection = self._open(connection)
        else:
            self._owns_connection = False
            self.connection = connection

        # Grammar
        self.grammar = get_grammar(self.connection.dialect)
        self._check_server_version()

        #: Table management
        self.schema = SchemaManager(self.connection, self.grammar)

        #: Collections cache: { collection id => Collection }
        self._collections = {}

        logger.info('Connected to %s, server version %s', self.connection.dialect.name, self.server_version)

    def _connect(self, settings: DriverSettingsDict, driver_options: dict):
        """ Connect using options """
        if not settings['driver']:
            raise DriverError('The "driver" option is required')
        if not settings['dbname']:
            raise DriverError('The "dbname" option is required')

        grammar_cls = grammar_class_for_name(settings['driver'])
        url = URL.create(
            grammar_cls.drivername,
            username=settings['username'],
            password=settings['password'],
            host=settings['host'],
            port=settings['port'] or grammar_cls.default_port,
            database=settings['dbname'],
            query=grammar_cls.connect_query(settings),
        )

        try:
            engine = create_engine(url, **driver_options)
        except (sa_exc.SQLAlchemyError, ImportError) as e:
            raise DriverError('Failed to connect to {}: {}'.format(
                url.render_as_string(hide_password=True), e)) from e
        return self._open(engine)

    @staticmethod
    def _open(engine: Engine):
        """ Open a connection: every statement is its own transaction """
        try:
            return engine.connect().execution_options(isolation_level='AUTOCOMMIT')
        except sa_exc.SQLAlchemyError as e:
            raise DriverError('Failed to connect: {}'.format(e)) from e

    @property
    def server_version(self):
        """ Server version: (major, minor, patch), or None when unknown """
        return getattr(self.connection.dialect, 'server_version_info', None)

    def _check_server_version(self):
        version = self.server_version
        if version is not None and tuple(version[:3]) < tuple(self.grammar.min_server_version):
            raise DriverError('Driver requires {} version >= {}, got {}'.format(
                self.connection.dialect.name,
                '.'.join(map(str, self.grammar.min_server_version)),
                '.'.join(map(str, version))))

    def close(self):
        """ Forget all collections, close the connection """
        self._collections.clear()
        if self._owns_connection:
            self.connection.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    # region Collections

    def get_collection(self, name: str, db: str = None) -> Collection:
        """ Get a collection; create its table if it doesn't exist

        :param name: Collection name
        :param db: Optional namespace: the collection id becomes 'db/name'
        """
        collection_id = '{}/{}'.format(db, name) if db else name

        try:
            collection = self._collections[collection_id]
            logger.debug('Collection %r: cached', collection_id)
        except KeyError:
            logger.debug('Collection %r: loading', collection_id)
            collection = self._collections[collection_id] = self._COLLECTION_CLS(collection_id, self)

        return collection

    def drop_collection(self, collection_id: str) -> bool:
        return self.get_collection(collection_id).drop()

    def handle_collection_drop(self, collection_id: str):
        """ Called by a Collection when it's dropped """
        self._collections.pop(collection_id, None)

    def handle_collection_rename(self, old_collection_id: str, collection: Collection):
        """ Called by a Collection when it's renamed """
        self._collections.pop(old_collection_id, None)
        self._collections[collection.collection_id] = collection

    # endregion

    # region Documents

    def find(self, collection_id: str, criteria: dict = None) -> list:
        """ Find documents

        :param criteria: dict(filter=, fields=, sort=, limit=, skip=)
        :return: list of documents
        """
        criteria = criteria or {}
        invalid_keys = set(criteria) - {'filter', 'fields', 'sort', 'limit', 'skip'}
        if invalid_keys:
            raise DriverError('Unknown find() criteria: {}'.format(', '.join(sorted(invalid_keys))))

        return self.get_collection(collection_id).find(
            criteria.get('filter'),
            projection=criteria.get('fields'),
            sort=criteria.get('sort'),
            limit=criteria.get('limit'),
            skip=criteria.get('skip'),
        ).to_list()

    def find_one(self, collection_id: str, filter=None, projection=None):
        return self.get_collection(collection_id).find_one(filter, projection)

    def find_one_by_id(self, collection_id: str, doc_id: str):
        return self.get_collection(collection_id).find_one_by_id(doc_id)

    def insert(self, collection_id: str, document: dict) -> bool:
        """ Insert a document. It receives an `_id` """
        return self.get_collection(collection_id).insert_one(document)

    def save(self, collection_id: str, document: dict) -> bool:
        """ Insert a document, or replace the one with the same `_id` """
        return self.get_collection(collection_id).save(document)

    def update(self, collection_id: str, filter, data: dict, merge: bool = True) -> int:
        """ Update documents

        :return: the number of updated documents
        """
        return self.get_collection(collection_id).update_many(filter, data, merge=merge)

    def remove(self, collection_id: str, filter=None) -> bool:
        """ Remove documents """
        self.get_collection(collection_id).delete_many(filter)
        return True

    def count(self, collection_id: str, filter=None) -> int:
        return self.get_collection(collection_id).count(filter)

    def remove_field(self, collection_id: str, field: str, filter=None) -> bool:
        """ Remove a top-level field from every matching document """
        collection = self.get_collection(collection_id)
        for document in collection.find_for_update(filter):
            if field not in document:
                continue
            del document[field]
            collection.replace_one(document)
        return True

    def rename_field(self, collection_id: str, field: str, new_field: str, filter=None) -> bool:
        """ Rename a top-level field in every matching document """
        collection = self.get_collection(collection_id)
        for document in collection.find_for_update(filter):
            if field not in document:
                continue
            document[new_field] = document.pop(field)
            collection.replace_one(document)
        return True

    # endregion
