from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.orm import scoped_session, sessionmaker
from sqlalchemy.pool import StaticPool

from production_planning.config import config


def engine_options(url):
    """Engine keyword arguments for a database URL.

    SQLite connections are shared across threads (the inventory decrement
    may run from worker threads) and in-memory databases keep a single
    connection so every session sees the same tables.
    """
    if url.startswith('sqlite'):
        options = {'connect_args': {'check_same_thread': False}}
        if url in ('sqlite://', 'sqlite:///:memory:'):
            options['poolclass'] = StaticPool
        return options

    return {
        'pool_size': config.get_int('DATABASE', 'pool_size', 10),
        'max_overflow': config.get_int('DATABASE', 'max_overflow', 20),
        'pool_pre_ping': True,
    }


class Database:
    """Engine and session registry for the Production Planning engine."""

    _instance = None

    def __new__(cls):
        """Singleton pattern implementation."""
        if cls._instance is None:
            cls._instance = super(Database, cls).__new__(cls)
            cls._instance._engine = None
            cls._instance._sessions = None
        return cls._instance

    def initialize(self, connection_string=None):
        """Bind the engine and session registry.

        Args:
            connection_string: Database URL, defaults to DATABASE.url
        """
        url = connection_string or config.get_db_url()

        if self._sessions is not None:
            self._sessions.remove()

        self._engine = create_engine(
            url,
            echo=config.get_boolean('DATABASE', 'echo', False),
            **engine_options(url)
        )
        self._sessions = scoped_session(sessionmaker(bind=self._engine))

    @property
    def engine(self):
        if self._engine is None:
            self.initialize()
        return self._engine

    @property
    def session(self):
        """Thread-local session registry."""
        if self._sessions is None:
            self.initialize()
        return self._sessions

    def create_all_tables(self):
        from production_planning.models import Base
        Base.metadata.create_all(self.engine)

    def drop_all_tables(self):
        from production_planning.models import Base
        Base.metadata.drop_all(self.engine)

    @contextmanager
    def session_scope(self):
        """Unit of work: commit on success, roll back on any error."""
        session = self.session()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()


# Global database instance
db = Database()


def session_scope():
    """Unit of work on the global database."""
    return db.session_scope()
