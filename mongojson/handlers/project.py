"""
### Project Operation

A projection trims the documents a query returns: name the fields to keep, or the fields to drop.

A document lives in a single JSON column and always comes from the database whole;
the projection is applied to it in Python, after the filter.

#### Syntax

* Field names mapped to `1` (keep) or `0` (drop):

    ```python
    {'a': 1, 'b': 1}  # Include specific fields. All other fields are excluded
    {'a': 0, 'b': 0}  # Exclude specific fields. All other fields are included
    ```

    When there's at least one `1`, the projection is inclusive, and `0`s are ignored,
    except for `_id`: the `_id` is always included, unless explicitly excluded with `{'_id': 0}`.

* Array syntax: `['a', 'b']`, the same as `{'a': 1, 'b': 1}`
* String syntax: `'a b'`, the same as `{'a': 1, 'b': 1}`

Dotted names work for nested objects: `{'author.name': 1}`.
"""

from .base import MongoQueryHandlerBase
from ..exc import InvalidQueryError


class MongoProject(MongoQueryHandlerBase):
    """ MongoDB projection operator.

        This operation is applied to loaded documents, not to SQL.

        * { a: 1, b: 1 } - include only the given fields; `_id` is included unless { _id: 0 }
        * { a: 0, b: 0 } - exclude the given fields
        * [ 'a', 'b' ] - include these fields
        * 'a b' - include these fields
    """

    query_object_section_name = 'project'

    #: Include mode: only include the listed fields
    MODE_INCLUDE = +1
    #: Exclude mode: exclude the listed fields
    MODE_EXCLUDE = -1

    #: The field that is included unless explicitly excluded
    ID_FIELD = '_id'

    def __init__(self, grammar, document, default_projection=None):
        """ Init projection

        :param default_projection: The default projection to use when no input was provided.
        :type default_projection: dict | list | None
        """
        super(MongoProject, self).__init__(grammar, document)

        # Settings
        self.default_projection = default_projection

        # On input
        #: Projection mode
        self.mode = None
        #: The projection: {field: 1|0}
        self.projection = None

    def input(self, projection):
        super(MongoProject, self).input(projection)

        # Default
        if projection is None:
            projection = self.default_projection

        self.mode, self.projection = self._input_process(projection)
        return self

    def _input_process(self, projection):
        """ Normalize the projection

        :return: (mode, projection)
        """
        # Empty
        if not projection:
            return None, {}

        # String syntax
        if isinstance(projection, str):
            projection = projection.split()

        # List syntax
        if isinstance(projection, (list, tuple)):
            if not all(isinstance(v, str) for v in projection):
                raise InvalidQueryError('{} list must contain field names'.format(self.query_object_section_name))
            projection = dict.fromkeys(projection, 1)

        # Dict
        if not isinstance(projection, dict):
            raise InvalidQueryError('{name} must be either an object, a list, or a string; {type} provided.'
                                    .format(name=self.query_object_section_name, type=type(projection).__name__))

        # Normalize values: 1 | 0
        projection = {k: 1 if v else 0 for k, v in projection.items()}

        # Mode
        if any(projection.values()):
            # Include mode. Only `_id` may have a zero
            include_id = projection.get(self.ID_FIELD, 1)
            projection = {k: 1 for k, v in projection.items() if v}
            if include_id:
                projection[self.ID_FIELD] = 1
            return self.MODE_INCLUDE, projection
        else:
            return self.MODE_EXCLUDE, projection

    def alter_query(self, query):
        # Projection is done in Python: see pluck_document()
        return query

    def __contains__(self, name):
        """ Test whether a top-level field name is included into projection

        :type name: str
        """
        if self.mode == self.MODE_INCLUDE:
            return any(k == name or k.startswith(name + '.') for k in self.projection)
        if self.mode == self.MODE_EXCLUDE:
            return name not in self.projection
        return True

    def pluck_document(self, document):
        """ Apply the projection to a document

        :param document: The whole document
        :type document: dict
        :return: A new dict with only the projected fields
        :rtype: dict
        """
        if self.mode == self.MODE_INCLUDE:
            result = {}
            for field_name in self.projection:
                _copy_path(document, result, field_name.split('.'))
            return result
        elif self.mode == self.MODE_EXCLUDE:
            result = dict(document)
            for field_name in self.projection:
                result = _remove_path(result, field_name.split('.'))
            return result
        else:
            return document

    def get_final_input_value(self):
        return dict(self.projection)


def _copy_path(src, dst, path):
    """ Copy a value at `path` from `src` to `dst`, creating intermediate objects """
    key, rest = path[0], path[1:]
    if not isinstance(src, dict) or key not in src:
        return
    if not rest:
        dst[key] = src[key]
    elif isinstance(src[key], dict):
        _copy_path(src[key], dst.setdefault(key, {}), rest)


def _remove_path(doc, path):
    """ Make a copy of `doc` without the value at `path` """
    key, rest = path[0], path[1:]
    if not isinstance(doc, dict) or key not in doc:
        return doc
    doc = dict(doc)
    if not rest:
        del doc[key]
    else:
        doc[key] = _remove_path(doc[key], rest)
    return doc
