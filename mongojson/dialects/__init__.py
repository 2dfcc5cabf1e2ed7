""" SQL grammars for the supported JSON databases

    A grammar is picked either by name (as used in driver options), or by an SqlAlchemy dialect.
"""

from .base import DialectGrammar
from .mysql import MysqlGrammar
from .postgresql import PostgresqlGrammar
from ..exc import DriverError


#: All grammars
GRAMMARS = (MysqlGrammar, PostgresqlGrammar)


def grammar_class_for_name(name: str) -> type:
    """ Find a grammar class by name: 'mysql', 'pgsql', 'postgresql'

    :raises DriverError: unknown name
    """
    for grammar_cls in GRAMMARS:
        if name in grammar_cls.names:
            return grammar_cls
    raise DriverError('Unsupported database driver: {!r}. Supported: {}'.format(
        name, ', '.join(n for g in GRAMMARS for n in g.names)))


def get_grammar(dialect) -> DialectGrammar:
    """ Get a grammar for an SqlAlchemy dialect

    :type dialect: sqlalchemy.engine.interfaces.Dialect
    :raises DriverError: unsupported database
    """
    if getattr(dialect, 'is_mariadb', False):
        raise DriverError('MariaDB is not supported: it has no JSON shorthand operators')
    return grammar_class_for_name(dialect.name)(dialect)
