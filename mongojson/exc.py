class BaseMongoJsonException(Exception):
    pass


class DriverError(BaseMongoJsonException):
    """ The storage driver can't be used: bad configuration, no connection, unsupported server """


class InvalidQueryError(BaseMongoJsonException):
    """ Invalid input provided by the User """

    def __init__(self, err: str):
        super(InvalidQueryError, self).__init__('Query object error: {err}'.format(err=err))


class UnsupportedOperatorError(InvalidQueryError):
    """ Query mentioned an operator that can't be compiled into SQL """

    def __init__(self, operator: str, field: str = None, reason: str = None):
        self.operator = operator
        self.field = field

        super(UnsupportedOperatorError, self).__init__(
            'Unsupported operator "{operator}"{field}{reason}'.format(
                operator=operator,
                field=' found in filter for field `{}`'.format(field) if field else '',
                reason=': {}'.format(reason) if reason else '')
        )


class CollectionDroppedError(BaseMongoJsonException):
    """ A Collection object was used after it has been dropped """

    def __init__(self, collection_id: str):
        self.collection_id = collection_id

        super(CollectionDroppedError, self).__init__(
            'Collection "{}" has been dropped; get a new one from the driver'.format(collection_id)
        )


class CursorError(BaseMongoJsonException):
    """ Invalid use of a Cursor """


class DisabledError(InvalidQueryError):
    """ The feature is disabled """
