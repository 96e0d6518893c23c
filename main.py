from estate_shares.application import create_app
from estate_shares.core.config import get_settings
from estate_shares.core.logging_config import configure_logging

settings = get_settings()
configure_logging(settings.log_level, settings.sql_log_level)

app = create_app(settings)
