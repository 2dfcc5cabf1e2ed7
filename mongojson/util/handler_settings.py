from .inspect import pluck_kwargs_from
from ..exc import DisabledError


class MongoQuerySettingsHandler:
    """ Distributes a flat dict of query settings among the handlers

        Settings are handlers' __init__() keyword arguments: `max_items` goes to MongoLimit,
        `default_projection` goes to MongoProject, and so on. The names are unique across handlers,
        so the user never has to say which handler a setting is for.

        Plus, `<handler name>_enabled=False` switches a handler off.
    """

    def __init__(self, settings: dict):
        assert isinstance(settings, dict)
        self._settings = settings

        #: Names of the handlers seen so far
        self._handler_names = set()
        #: Keyword arguments consumed by those handlers
        self._consumed = set()
        #: Names of the disabled handlers
        self._disabled = set()

    def get_settings(self, handler_name: str, handler_cls: type) -> dict:
        """ Keyword arguments for `handler_cls.__init__()` """
        if not self._settings.get(handler_name + '_enabled', True):
            self._disabled.add(handler_name)

        kwargs = pluck_kwargs_from(self._settings, for_func=handler_cls.__init__)

        self._handler_names.add(handler_name)
        self._consumed.update(kwargs)
        return kwargs

    def is_handler_enabled(self, handler_name: str) -> bool:
        return handler_name not in self._disabled

    def raise_if_not_handler_enabled(self, handler_name: str):
        """ :raises DisabledError """
        if not self.is_handler_enabled(handler_name):
            raise DisabledError('Query handler "{}" is disabled'.format(handler_name))

    def raise_if_invalid_handler_settings(self):
        """ Complain about settings no handler has asked for

        Call it after every handler got its settings.

        :raises KeyError: Unknown setting names: typos, most likely
        """
        known = self._consumed | {name + '_enabled' for name in self._handler_names}
        unknown = set(self._settings) - known
        if unknown:
            raise KeyError('Unknown query settings: {}'.format(', '.join(sorted(unknown))))

    def __repr__(self):
        return '{}({!r})'.format(self.__class__.__name__, self._settings)
