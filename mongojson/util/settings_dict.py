from .inspect import get_function_defaults


class DriverSettingsDict(dict):
    """ Driver options, as keyword arguments with defaults

        `Driver` accepts a plain dict as well; this class documents the keys, fills in defaults,
        and rejects unknown keys.
    """

    def __init__(self,
                 driver: str = None,
                 host: str = 'localhost',
                 port: int = None,
                 dbname: str = None,
                 charset: str = 'utf8mb4',
                 username: str = None,
                 password: str = None,
                 query_settings: dict = None,
                 ):
        """ Connection settings for `Driver`.

        Example:
            ```python
            from mongojson import Driver, DriverSettingsDict

            driver = Driver(DriverSettingsDict(
                driver='pgsql',
                dbname='app',
                username='app',
                password='secret',
                query_settings=dict(max_items=1000),
            ))
            ```

        Args:
            driver (str): The database family: 'mysql', or 'pgsql' (aliases: 'postgresql', 'postgres')
            host (str): Server host name
            port (int | None): Server port. Default: the standard port of the database family
            dbname (str): The database name. Required.
            charset (str): (for: mysql) Connection character set
            username (str | None): User name
            password (str | None): Password
            query_settings (dict | None): Settings for every MongoQuery: see `MongoQuery`
        """
        super(DriverSettingsDict, self).__init__()
        self.update({k: v
                     for k, v in locals().items()
                     if k not in {'__class__', 'self'}})

    @classmethod
    def known_keys(cls) -> frozenset:
        """ Names of all settings """
        return frozenset(get_function_defaults(cls.__init__))

    @classmethod
    def from_options(cls, options: dict):
        """ Initialize from a plain dict, using defaults for the missing keys

        :raises KeyError: unknown keys
        """
        invalid_keys = set(options) - cls.known_keys()
        if invalid_keys:
            raise KeyError('Invalid driver options: {}'.format(', '.join(sorted(invalid_keys))))
        return cls(**options)

    def and_more(self, **settings):
        """ Copy the object and add more settings to it """
        return self.__class__(**{**self, **settings})
