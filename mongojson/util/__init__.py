from .reusable import Reusable
from .handler_settings import MongoQuerySettingsHandler
from .settings_dict import DriverSettingsDict
from .objectid import ObjectIdGenerator, generate_id
