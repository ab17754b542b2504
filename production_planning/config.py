import os
import configparser
from pathlib import Path

CONFIG_ENV_VAR = 'PRODUCTION_PLANNING_CONFIG'
DEFAULT_CONFIG_PATH = Path('config') / 'settings.ini'

DEFAULTS = {
    'DATABASE': {
        'url': 'sqlite:///production_planning.db',
        'echo': 'False',
    },
    'LOGGING': {
        'level': 'INFO',
        'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        'directory': 'logs',
        'max_size_mb': '10',
        'backup_count': '5',
        'console_output': 'True',
    },
    # Used when a product has no throughput history
    'CAPACITY': {
        'lookback_days': '90',
        'hours_per_day': '8',
        'default_units_per_day': '100',
        'default_efficiency': '0.75',
        'default_defect_rate': '0.05',
    },
    'SCHEDULING': {
        'default_resource': 'WS-001',
        'default_shifts_per_day': '1',
        'high_utilization_threshold': '0.9',
        'capacity_exceeded_threshold': '0.95',
        'min_data_points': '5',
        'defect_rate_threshold': '0.05',
    },
    'MRP': {
        'ordering_cost': '50',
        'holding_cost_rate': '0.25',
        'working_days_per_year': '250',
        'service_level': '0.95',
        # Extra days before the lead time when placing component orders
        'order_buffer_days': '0',
    },
}


class Config:
    """Configuration manager for the Production Planning engine.

    Values come from an INI file (``config/settings.ini`` or the path in
    ``PRODUCTION_PLANNING_CONFIG``). Keys missing from the file fall back to
    DEFAULTS, and the defaults are written out when no file exists yet.
    """

    _instance = None

    def __new__(cls):
        """Singleton pattern implementation."""
        if cls._instance is None:
            cls._instance = super(Config, cls).__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        if self._initialized:
            return

        self._config_path = Path(os.environ.get(CONFIG_ENV_VAR) or DEFAULT_CONFIG_PATH)
        self._config = configparser.ConfigParser(interpolation=None)
        self._config.read_dict(DEFAULTS)

        if self._config_path.exists():
            self._config.read(self._config_path)
        else:
            self._write_defaults()

        self._initialized = True

    def _write_defaults(self):
        # Read-only locations keep the in-memory defaults
        try:
            self._config_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self._config_path, 'w') as config_file:
                self._config.write(config_file)
        except OSError:
            pass

    def _lookup(self, getter, section, key, default):
        try:
            return getter(section, key)
        except (configparser.NoSectionError, configparser.NoOptionError, ValueError):
            return default

    def get(self, section, key, default=None):
        """Get configuration value."""
        return self._lookup(self._config.get, section, key, default)

    def get_int(self, section, key, default=None):
        """Get configuration value as integer."""
        return self._lookup(self._config.getint, section, key, default)

    def get_float(self, section, key, default=None):
        """Get configuration value as float."""
        return self._lookup(self._config.getfloat, section, key, default)

    def get_boolean(self, section, key, default=None):
        """Get configuration value as boolean."""
        return self._lookup(self._config.getboolean, section, key, default)

    def get_db_url(self):
        """Get the SQLAlchemy database URL."""
        return self.get('DATABASE', 'url', DEFAULTS['DATABASE']['url'])

    @property
    def log_config(self):
        return {
            'level': self.get('LOGGING', 'level', 'INFO'),
            'format': self.get('LOGGING', 'format', DEFAULTS['LOGGING']['format']),
            'directory': self.get('LOGGING', 'directory', 'logs'),
            'max_size_mb': self.get_int('LOGGING', 'max_size_mb', 10),
            'backup_count': self.get_int('LOGGING', 'backup_count', 5),
            'console_output': self.get_boolean('LOGGING', 'console_output', True)
        }

    @property
    def capacity_config(self):
        """Throughput lookback and the fallback capability for new products."""
        return {
            'lookback_days': self.get_int('CAPACITY', 'lookback_days', 90),
            'hours_per_day': self.get_float('CAPACITY', 'hours_per_day', 8.0),
            'default_units_per_day': self.get_float('CAPACITY', 'default_units_per_day', 100.0),
            'default_efficiency': self.get_float('CAPACITY', 'default_efficiency', 0.75),
            'default_defect_rate': self.get_float('CAPACITY', 'default_defect_rate', 0.05)
        }

    @property
    def scheduling_config(self):
        """Default resource, shift count and warning thresholds for proposals."""
        return {
            'default_resource': self.get('SCHEDULING', 'default_resource', 'WS-001'),
            'default_shifts_per_day': self.get_int('SCHEDULING', 'default_shifts_per_day', 1),
            'high_utilization_threshold': self.get_float('SCHEDULING', 'high_utilization_threshold', 0.9),
            'capacity_exceeded_threshold': self.get_float('SCHEDULING', 'capacity_exceeded_threshold', 0.95),
            'min_data_points': self.get_int('SCHEDULING', 'min_data_points', 5),
            'defect_rate_threshold': self.get_float('SCHEDULING', 'defect_rate_threshold', 0.05)
        }

    @property
    def mrp_config(self):
        """Cost parameters for EOQ and safety stock, plus order timing."""
        return {
            'ordering_cost': self.get_float('MRP', 'ordering_cost', 50.0),
            'holding_cost_rate': self.get_float('MRP', 'holding_cost_rate', 0.25),
            'working_days_per_year': self.get_int('MRP', 'working_days_per_year', 250),
            'service_level': self.get_float('MRP', 'service_level', 0.95),
            'order_buffer_days': self.get_int('MRP', 'order_buffer_days', 0)
        }


# Global config instance
config = Config()
