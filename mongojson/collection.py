import logging

from sqlalchemy import select, insert, update, delete

from .codec import json_encode, json_decode
from .cursor import Cursor
from .exc import CollectionDroppedError, InvalidQueryError
from .query import MongoQuery
from .util import Reusable

logger = logging.getLogger(__name__)


class Collection:
    """ A collection of documents, stored in a table with the same name

        The table is created when the collection is first accessed.

        Get collections from the driver: `driver.get_collection('users')`.
        The driver keeps one Collection object per collection id.
    """

    # The class to build queries with
    _MONGOQUERY_CLS = MongoQuery

    #: Query settings that don't apply to writes and counts: they see every matching document, whole
    WRITE_IGNORED_SETTINGS = ('max_items', 'default_projection')

    def __init__(self, collection_id: str, driver):
        """
        :param collection_id: The name of the collection; also, the name of the table
        :param driver: The owning driver: the connection, the grammar, the cache of collections
        :type driver: mongojson.driver.Driver
        """
        self.collection_id = collection_id
        self.driver = driver
        self.dropped = False

        # Make sure the table exists
        self.driver.schema.ensure_table(collection_id)

        self._init_query()

    def _init_query(self):
        settings = self.driver.query_settings
        write_settings = {k: v for k, v in settings.items() if k not in self.WRITE_IGNORED_SETTINGS}

        self._mongoquery = Reusable(self._MONGOQUERY_CLS(self.driver.grammar, self.collection_id, settings))
        self._write_mongoquery = Reusable(self._MONGOQUERY_CLS(self.driver.grammar, self.collection_id, write_settings))

    def __repr__(self):
        return '{}({!r})'.format(self.__class__.__name__, self.collection_id)

    @property
    def connection(self):
        return self.driver.connection

    @property
    def grammar(self):
        return self.driver.grammar

    # region Reading

    def query(self, **query_object):
        """ Start a MongoQuery on this collection

        :rtype: MongoQuery
        :raises CollectionDroppedError
        :raises InvalidQueryError
        """
        self._raise_if_dropped()
        return self._mongoquery.query(**query_object)

    def find(self, filter=None, projection=None, sort=None, limit=None, skip=None) -> Cursor:
        """ Find documents

        Nothing is executed until the cursor is iterated over.
        The query is compiled right away, though: errors are reported by this method.

        :param filter: Filter criteria, or a function: callable(document) -> bool
        :param projection: Fields to include or exclude
        :param sort: Sorting: {field: 1 | -1}
        :param limit: Maximum number of documents
        :param skip: Number of documents to skip
        :rtype: Cursor
        :raises InvalidQueryError
        """
        mq = self.query(filter=filter, project=projection, sort=sort, limit=limit, skip=skip)
        return Cursor(self.connection, mq.end(), mq)

    def find_one(self, filter=None, projection=None):
        """ Find one document

        :return: The document, or None
        :rtype: dict | None
        """
        # With the limit handler disabled, the cursor stops at the first document by itself
        limit = 1 if self._mongoquery.is_handler_enabled('limit') else None
        return self.find(filter, projection, limit=limit).first()

    def find_one_by_id(self, doc_id: str):
        """ Find one document by its `_id`

        :return: The document, or None
        :rtype: dict | None
        """
        self._raise_if_dropped()
        tbl = self._table()
        row = self.connection.execute(
            select(self.grammar.document_text(tbl.c[self.grammar.DOCUMENT_COLUMN]))
            .where(self.grammar.identity_equals(tbl, doc_id))
        ).first()
        return json_decode(row[0]) if row is not None else None

    def count(self, filter=None) -> int:
        """ Count the documents that match the filter

        `max_items` does not apply: the count is always the total.
        """
        self._raise_if_dropped()
        mq = self._write_mongoquery.query(filter=filter)

        # A function can't be run by the database
        if mq.predicate is not None:
            logger.debug('Counting %r with a Python function: loading documents', self)
            return Cursor(self.connection, mq.end(), mq).count()

        return self.connection.execute(mq.end_count()).scalar()

    # endregion

    # region Writing

    def insert_one(self, document: dict) -> bool:
        """ Insert a document

        An `_id` is given to the document, unless it has one already.
        The document is modified in place.

        :raises sqlalchemy.exc.IntegrityError: a document with the same `_id` exists
        """
        self._raise_if_dropped()
        self._assign_id(document)
        self.connection.execute(
            insert(self._table()).values(self._document_values(document))
        )
        return True

    def insert_many(self, documents: list) -> int:
        """ Insert many documents

        :return: The number of inserted documents
        """
        self._raise_if_dropped()
        if not documents:
            return 0

        for document in documents:
            self._assign_id(document)
        self.connection.execute(
            insert(self._table()).values([self._document_values(document) for document in documents])
        )
        return len(documents)

    def replace_one(self, document: dict) -> bool:
        """ Overwrite a stored document with the same `_id`

        :return: whether the document was found
        """
        self._raise_if_dropped()
        if not document.get('_id'):
            raise InvalidQueryError('Can not replace a document without an `_id`')

        tbl = self._table()
        result = self.connection.execute(
            update(tbl)
            .where(self.grammar.identity_equals(tbl, document['_id']))
            .values(self._document_values(document))
        )
        return result.rowcount > 0

    def update_many(self, filter, data: dict, merge: bool = True) -> int:
        """ Update all documents that match the filter

        Every document is loaded, modified, and written back whole.

        :param filter: Filter criteria, or a function
        :param data: The new data
        :param merge: Merge `data` into every document (True), or replace documents with it (False).
            The `_id` is kept either way.
        :return: The number of updated documents
        """
        updated = 0
        for document in self.find_for_update(filter):
            new_document = {**document, **data} if merge else dict(data)
            new_document['_id'] = document['_id']
            if self.replace_one(new_document):
                updated += 1
        return updated

    def save(self, document: dict) -> bool:
        """ Insert a document, or replace the stored one with the same `_id` """
        if not document.get('_id'):
            return self.insert_one(document)

        # Update, or insert with the given `_id`
        if not self.replace_one(document):
            self.insert_one(document)
        return True

    def delete_many(self, filter=None) -> int:
        """ Delete all documents that match the filter

        :return: The number of deleted documents
        """
        self._raise_if_dropped()
        mq = self._write_mongoquery.query(filter=filter)
        tbl = mq.table

        # A function can't be run by the database: find the ids first
        if mq.predicate is not None:
            logger.debug('Deleting from %r with a Python function: loading documents', self)
            ids = [document['_id'] for document in Cursor(self.connection, mq.end(), mq)]
            return sum(
                self.connection.execute(delete(tbl).where(self.grammar.identity_equals(tbl, doc_id))).rowcount
                for doc_id in ids
            )

        stmt = delete(tbl)
        condition = mq.handler_filter.compile_statement()
        if condition is not None:
            stmt = stmt.where(condition)
        return self.connection.execute(stmt).rowcount

    # endregion

    # region Lifecycle

    def drop(self) -> bool:
        """ Drop the collection and its table

        This object can't be used afterwards: get a new one from the driver.
        """
        self._raise_if_dropped()
        self.driver.schema.drop_table(self.collection_id)
        self.dropped = True
        self.driver.handle_collection_drop(self.collection_id)
        return True

    def rename_collection(self, new_collection_id: str) -> bool:
        """ Rename the collection and its table """
        self._raise_if_dropped()
        old_collection_id = self.collection_id
        self.driver.schema.rename_table(old_collection_id, new_collection_id)

        self.collection_id = new_collection_id
        self._init_query()
        self.driver.handle_collection_rename(old_collection_id, self)
        return True

    # endregion

    def _raise_if_dropped(self):
        if self.dropped:
            raise CollectionDroppedError(self.collection_id)

    def find_for_update(self, filter) -> list:
        """ Load every matching document, whole """
        self._raise_if_dropped()
        mq = self._write_mongoquery.query(filter=filter)
        return Cursor(self.connection, mq.end(), mq).to_list()

    def _table(self):
        return self.grammar.collection_table(self.collection_id)

    def _assign_id(self, document: dict):
        if not document.get('_id'):
            document['_id'] = self.driver.id_generator()

    def _document_values(self, document: dict) -> dict:
        return {self.grammar.DOCUMENT_COLUMN: self.grammar.document_value(json_encode(document))}
