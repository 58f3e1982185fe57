"""
Bikepark Reports - Configuration Management
Handles environment configuration with AWS SSM Parameter Store for production
and python-dotenv for local development.
"""

import os
from typing import Optional
from dotenv import load_dotenv

# Load .env file for local development
load_dotenv()


class Config:
    """
    Configuration manager with dual-mode operation:
    - Local: Reads from .env file via python-dotenv
    - Production: Reads from AWS SSM Parameter Store
    """

    def __init__(self):
        self.environment = os.getenv('ENVIRONMENT', 'local')
        self._ssm_client = None

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        """
        Fetch configuration value from SSM (production) or environment (local).

        Args:
            key: Configuration key name
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        if self.environment == 'production':
            return self._get_from_ssm(key, default)
        else:
            return os.getenv(key, default)

    def _get_from_ssm(self, key: str, default: Optional[str] = None) -> Optional[str]:
        """
        Fetch configuration from AWS SSM Parameter Store.

        Args:
            key: Parameter key name
            default: Default value if parameter not found

        Returns:
            Parameter value or default

        Raises:
            ConfigurationError: If parameter not found and no default provided,
                               or if AWS credentials/permissions are invalid
        """
        ssm_prefix = os.getenv('AWS_SSM_PREFIX', '/bikepark-reports')
        parameter_name = f"{ssm_prefix}/{key}"

        try:
            if self._ssm_client is None:
                import boto3
                self._ssm_client = boto3.client(
                    'ssm',
                    region_name=os.getenv('AWS_REGION', 'eu-west-1')
                )

            response = self._ssm_client.get_parameter(
                Name=parameter_name,
                WithDecryption=True
            )
            return response['Parameter']['Value']

        except Exception as e:
            error_type = type(e).__name__
            if error_type == 'ParameterNotFound':
                if default is not None:
                    return default
                raise ConfigurationError(
                    f"Required parameter '{key}' not found in SSM at path '{parameter_name}'. "
                    f"Please create the parameter or provide a default value."
                )

            # Credentials, permissions, network
            if default is not None:
                import logging
                logging.warning(
                    f"Failed to fetch SSM parameter '{key}': {error_type}: {e}. "
                    f"Using default value."
                )
                return default
            raise ConfigurationError(
                f"Failed to fetch parameter '{key}' from SSM: {error_type}: {e}. "
                f"Check AWS credentials, IAM permissions, and network connectivity."
            )

    def get_int(self, key: str, default: int) -> int:
        """
        Get configuration value as integer.

        Args:
            key: Configuration key name
            default: Default value if key not found or conversion fails

        Returns:
            Integer value or default
        """
        value = self.get(key, str(default))
        try:
            return int(value)
        except (ValueError, TypeError) as e:
            import logging
            logging.warning(
                f"Invalid integer for config key '{key}': '{value}'. "
                f"Using default={default}. Error: {e}"
            )
            return default

    def get_bool(self, key: str, default: bool) -> bool:
        """
        Get configuration value as boolean.

        Args:
            key: Configuration key name
            default: Default value if key not found

        Returns:
            Boolean value or default
        """
        value = self.get(key, str(default))
        if value is None:
            return default
        return value.lower() in ('true', '1', 'yes', 'on')

    def get_list(self, key: str, default: str = '') -> list:
        """Get a comma-separated configuration value as a list of stripped items."""
        value = self.get(key, default) or ''
        return [item.strip() for item in value.split(',') if item.strip()]

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == 'production'


class ConfigurationError(Exception):
    """Raised when configuration cannot be loaded."""
    pass


# Global configuration instance
config = Config()


# Database configuration
DB_HOST = config.get('DB_HOST', 'localhost')
DB_PORT = config.get_int('DB_PORT', 3306)
DB_NAME = config.get('DB_NAME', 'fietsberaad_dev')
DB_USER = config.get('DB_USER', 'root')
DB_PASSWORD = config.get('DB_PASSWORD', '')

# Flask configuration
FLASK_ENV = config.get('FLASK_ENV', 'development')
FLASK_DEBUG = config.get_bool('FLASK_DEBUG', True)
SECRET_KEY = config.get('SECRET_KEY', 'dev-secret-key-change-in-production')

# Logging configuration
LOG_LEVEL = config.get('LOG_LEVEL', 'INFO')

# Reporting day offset: minutes after midnight at which a reporting day starts
DAY_BEGINS_AT_MINUTES = config.get_int('DAY_BEGINS_AT_MINUTES', 0)

# Sampling interval of regular occupancy rows in bezettingsdata
OCCUPANCY_INTERVAL_MINUTES = config.get_int('OCCUPANCY_INTERVAL_MINUTES', 15)

# Serve reports from the cache tables when the report type supports it
REPORTS_USE_CACHE = config.get_bool('REPORTS_USE_CACHE', True)
REPORT_RESULT_CACHE_TTL_SECONDS = config.get_int('REPORT_RESULT_CACHE_TTL_SECONDS', 300)
REPORT_DEFAULT_RANGE_DAYS = config.get_int('REPORT_DEFAULT_RANGE_DAYS', 30)

# Window cleared by the cache update driver before every run
CACHE_CLEAR_WINDOW_START = config.get('CACHE_CLEAR_WINDOW_START', '2018-01-01')
CACHE_CLEAR_WINDOW_END = config.get('CACHE_CLEAR_WINDOW_END', '2100-01-01')

# Advisory lock wait for lifecycle-mutating cache actions
CACHE_LOCK_TIMEOUT_SECONDS = config.get_int('CACHE_LOCK_TIMEOUT_SECONDS', 10)

# Incremental update retries for transient database errors
CACHE_UPDATE_MAX_ATTEMPTS = config.get_int('CACHE_UPDATE_MAX_ATTEMPTS', 3)

# API authentication (comma-separated shared keys; empty disables the check)
API_KEYS = config.get_list('API_KEYS')

# Database connection pool settings
DB_POOL_SIZE = 10
DB_POOL_MAX_OVERFLOW = 20
DB_POOL_RECYCLE = 3600  # Recycle connections after 1 hour
DB_POOL_PRE_PING = True  # Health check connections before use
DB_STATEMENT_TIMEOUT_SECONDS = config.get_int('DB_STATEMENT_TIMEOUT_SECONDS', 600)
