"""Database schema management module.

This module handles database schema versioning and migrations.
Schema versions live in database/schema/vN.py, each exposing a ``schema`` dict
with the full table list for a fresh install and the SQL migrations that move
an existing database from version N-1 to N.
"""
import importlib
import logging
from pathlib import Path
from typing import Dict, Any, Union

from ..exceptions import DatabaseSchemaError

logger = logging.getLogger(__name__)

class SchemaManager:
    """Manages database schema versioning and migrations."""

    def __init__(self, pool, schema_dir: Union[str, Path] = 'database/schema/') -> None:
        """Initialize schema manager.

        Args:
            pool: Database connection pool
            schema_dir: Directory containing schema version files
        """
        self.pool = pool
        self._schema_dir = Path(schema_dir)
        self.current_version = 0
        self._schema_files = {}

    async def initialize(self, force_recreate: bool = False) -> None:
        """Initialize schema management.

        Creates the schema version table if it doesn't exist and runs any pending migrations.

        Args:
            force_recreate: Drop every table and install the latest schema from scratch

        Raises:
            DatabaseSchemaError: If schema initialization fails or no valid schema files are found
        """
        try:
            async with self.pool.acquire() as conn:
                await conn.execute('''
                    CREATE TABLE IF NOT EXISTS schema_version (
                        version INT8 PRIMARY KEY,
                        applied_at TIMESTAMPTZ NOT NULL DEFAULT now()
                    )
                ''')

                if force_recreate:
                    await conn.execute('DELETE FROM schema_version')

                row = await conn.fetchrow(
                    'SELECT version FROM schema_version ORDER BY version DESC LIMIT 1'
                )
                self.current_version = row['version'] if row else 0

            schema_files = self._load_schema_files()
            if not schema_files:
                logger.error("No valid schema files found in schema directory")
                raise DatabaseSchemaError("No valid schema files found in schema directory")

            await self._apply_migrations(schema_files)

        except DatabaseSchemaError:
            raise
        except Exception as e:
            logger.error(f"Schema initialization failed: {e}")
            raise DatabaseSchemaError(f"Failed to initialize schema: {e}")

    def _load_schema_files(self) -> Dict[int, Dict[str, Any]]:
        """Load all schema version files.

        Returns:
            Dict mapping version numbers to schema definitions
        """
        schema_files = {}

        if not self._schema_dir.exists():
            return schema_files

        for file in self._schema_dir.glob('v*.py'):
            try:
                version = int(file.stem[1:])  # Extract number from vX.py
            except ValueError:
                logger.warning(f"Invalid schema filename: {file}")
                continue

            module = importlib.import_module(f"database.schema.{file.stem}")
            if not hasattr(module, 'schema'):
                raise DatabaseSchemaError(
                    f"Schema file {file} missing 'schema' definition"
                )

            schema = module.schema
            if schema['version'] != version:
                raise DatabaseSchemaError(
                    f"Schema version mismatch in {file}: "
                    f"Expected v{version}, got v{schema['version']}"
                )

            schema_files[version] = schema

        self._schema_files = dict(sorted(schema_files.items()))
        return self._schema_files

    async def _apply_migrations(self, schema_files: Dict[int, Dict[str, Any]]) -> None:
        """Apply any pending schema migrations.

        Args:
            schema_files: Dict mapping version numbers to schema definitions
        """
        latest_version = max(schema_files.keys())
        if self.current_version >= latest_version:
            logger.info("Schema is up to date")
            return

        logger.info(
            f"Updating schema from version {self.current_version} to {latest_version}"
        )

        try:
            async with self.pool.acquire() as conn:
                async with conn.transaction():
                    if self.current_version == 0:
                        await self._create_fresh_schema(conn, schema_files[latest_version])
                    else:
                        for version in range(self.current_version + 1, latest_version + 1):
                            if version not in schema_files:
                                continue
                            for migration in schema_files[version].get('migrations', []):
                                await conn.execute(migration)
                            await conn.execute(
                                'INSERT INTO schema_version (version) VALUES ($1)',
                                version
                            )
                            logger.info(f"Successfully migrated to version {version}")
            self.current_version = latest_version

        except Exception as e:
            logger.error(f"Schema migration failed: {e}")
            raise DatabaseSchemaError(f"Failed to apply schema migrations: {e}")

    async def _create_fresh_schema(self, conn, schema: Dict[str, Any]) -> None:
        """Create a fresh schema installation.

        Args:
            conn: Database connection
            schema: Latest schema definition
        """
        await self._drop_all_tables(conn)

        # Create all tables without foreign keys first
        for table in schema.get('tables', []):
            await self._create_table(conn, table)

        for table in schema.get('tables', []):
            await self._add_constraints(conn, table)

        await conn.execute(
            'INSERT INTO schema_version (version) VALUES ($1)',
            schema['version']
        )
        logger.info(f"Successfully created fresh schema version {schema['version']}")

    async def _drop_all_tables(self, conn) -> None:
        """Drop all existing tables in the database except schema_version."""
        tables = await conn.fetch('''
            SELECT table_name
            FROM information_schema.tables
            WHERE table_schema = 'public'
            AND table_name != 'schema_version'
            ORDER BY table_name DESC
        ''')

        for table in tables:
            await conn.execute(f'DROP TABLE IF EXISTS "{table["table_name"]}" CASCADE')
            logger.info(f"Dropped table {table['table_name']}")

    async def _create_table(self, conn, table: Dict[str, Any]) -> None:
        """Create a single table without foreign keys.

        Args:
            conn: Database connection
            table: Table definition dictionary
        """
        columns = []
        constraints = []

        for col in table['columns']:
            col_def = f"{col['name']} {col['type']}"

            if col.get('primary_key'):
                constraints.append(f"PRIMARY KEY ({col['name']})")
            elif col.get('unique'):
                constraints.append(f"UNIQUE ({col['name']})")

            if 'default' in col:
                col_def += f" DEFAULT {col['default']}"

            if col.get('nullable') is False:
                col_def += " NOT NULL"

            columns.append(col_def)

        if isinstance(table.get('primary_key'), list):
            constraints.append(
                f"PRIMARY KEY ({', '.join(table['primary_key'])})"
            )

        table_def = ', '.join(columns + constraints)

        await conn.execute(f'''
            CREATE TABLE {table['name']} (
                {table_def}
            )
        ''')
        logger.info(f"Created table {table['name']}")

    async def _add_constraints(self, conn, table: Dict[str, Any]) -> None:
        """Add foreign keys and indexes to a table.

        Args:
            conn: Database connection
            table: Table definition dictionary
        """
        for fk in table.get('foreign_keys', []):
            on_delete = f" ON DELETE {fk['on_delete']}" if 'on_delete' in fk else ''
            await conn.execute(f'''
                ALTER TABLE {table['name']}
                ADD CONSTRAINT fk_{table['name']}_{fk['columns'][0]}
                FOREIGN KEY ({', '.join(fk['columns'])})
                REFERENCES {fk['references']}{on_delete}
            ''')
            logger.info(
                f"Added foreign key constraint to {table['name']} "
                f"referencing {fk['references']}"
            )

        for idx in table.get('indexes', []):
            unique = 'UNIQUE ' if idx.get('unique') else ''
            where = f" WHERE {idx['where']}" if 'where' in idx else ''
            await conn.execute(f'''
                CREATE {unique}INDEX {idx['name']}
                ON {table['name']}({', '.join(idx['columns'])})
                {where}
            ''')
            logger.info(f"Created index {idx['name']} on {table['name']}")
