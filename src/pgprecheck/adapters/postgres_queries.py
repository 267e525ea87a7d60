"""Fixed SQL text for every probe.

Identifiers observed at runtime (extension and type names) are only ever
passed as bind parameters; nothing here is formatted with external input.
"""

from pgprecheck.interfaces.probe_client import ProbeId

LIST_DATABASES = "SELECT datname FROM pg_catalog.pg_database WHERE datistemplate = false"

# Walks domains, arrays, composites and ranges built on the seed types and
# lists user columns that depend on any of them.
_TYPE_USAGE_TEMPLATE = """
WITH RECURSIVE oids AS (
    {seed}
    UNION ALL
    SELECT * FROM (
        WITH x AS (SELECT oid FROM oids)
        SELECT t.oid FROM pg_catalog.pg_type t, x
        WHERE typbasetype = x.oid AND typtype = 'd'
        UNION ALL
        SELECT t.oid FROM pg_catalog.pg_type t, x
        WHERE typelem = x.oid AND typtype = 'b'
        UNION ALL
        SELECT t.oid
        FROM pg_catalog.pg_type t, pg_catalog.pg_class c, pg_catalog.pg_attribute a, x
        WHERE t.typtype = 'c'
          AND t.oid = c.reltype
          AND c.oid = a.attrelid
          AND NOT a.attisdropped
          AND a.atttypid = x.oid
        UNION ALL
        SELECT t.oid FROM pg_catalog.pg_type t, pg_catalog.pg_range r, x
        WHERE t.typtype = 'r' AND r.rngtypid = t.oid AND r.rngsubtype = x.oid
    ) foo
)
SELECT n.nspname, c.relname, a.attname
FROM pg_catalog.pg_class c, pg_catalog.pg_namespace n, pg_catalog.pg_attribute a
WHERE c.oid = a.attrelid
  AND NOT a.attisdropped
  AND a.atttypid IN (SELECT oid FROM oids)
  AND c.relkind IN ('r', 'm', 'i')
  AND c.relnamespace = n.oid
  AND n.nspname !~ '^pg_temp_'
  AND n.nspname !~ '^pg_toast_temp_'
  AND n.nspname NOT IN ('pg_catalog', 'information_schema')
ORDER BY n.nspname, c.relname, a.attname
"""

_SYSTEM_COMPOSITE_SEED = """
    SELECT t.oid FROM pg_catalog.pg_type t
    LEFT JOIN pg_catalog.pg_namespace n ON t.typnamespace = n.oid
    WHERE typtype = 'c' AND (t.oid < 16384 OR nspname = 'information_schema')
"""

_REG_TYPE_SEED = """
    SELECT oid FROM pg_catalog.pg_type t
    WHERE t.typnamespace = (
        SELECT oid FROM pg_catalog.pg_namespace WHERE nspname = 'pg_catalog'
    )
    AND t.typname IN (
        'regcollation', 'regconfig', 'regdictionary', 'regnamespace',
        'regoper', 'regoperator', 'regproc', 'regprocedure'
    )
"""

# Unknown type names resolve to NULL and therefore match nothing.
_BOUND_TYPE_SEED = "SELECT pg_catalog.to_regtype($1::text)::pg_catalog.oid AS oid"

_POLYMORPHIC_FUNCTIONS = """ARRAY[
    'array_append(anyarray,anyelement)',
    'array_cat(anyarray,anyarray)',
    'array_prepend(anyelement,anyarray)',
    'array_remove(anyarray,anyelement)',
    'array_replace(anyarray,anyelement,anyelement)',
    'array_position(anyarray,anyelement)',
    'array_position(anyarray,anyelement,integer)',
    'array_positions(anyarray,anyelement)',
    'width_bucket(anyelement,anyarray)'
]::pg_catalog.regprocedure[]"""

_POLYMORPHIC_TYPES = "ARRAY['anyarray', 'anyelement']::pg_catalog.regtype[]"

_TABLES_WITHOUT_PK_WHERE = """
WHERE c.relkind = 'r'
  AND n.nspname NOT IN ('pg_catalog', 'information_schema', 'pg_toast', 'rdsadmin')
  AND NOT EXISTS (
      SELECT 1 FROM pg_catalog.pg_constraint con
      WHERE con.conrelid = c.oid AND con.contype = 'p'
  )
"""

_DDL_EVENT_TRIGGER_WHERE = """
WHERE evtevent IN ('ddl_command_start', 'ddl_command_end', 'sql_drop')
  AND evtname != 'dts_capture_catalog_start'
"""

PROBE_QUERIES: dict[ProbeId, str] = {
    ProbeId.PREPARED_XACT_COUNT: "SELECT count(*) FROM pg_catalog.pg_prepared_xacts",
    ProbeId.PREPARED_XACTS: (
        "SELECT gid, prepared, owner, database FROM pg_catalog.pg_prepared_xacts ORDER BY gid"
    ),
    ProbeId.DATABASES_NOT_ALLOWING_CONNECTIONS: (
        "SELECT datname FROM pg_catalog.pg_database "
        "WHERE datname != 'template0' AND NOT datallowconn ORDER BY datname"
    ),
    ProbeId.TEMPLATE_DATABASE_COUNT: (
        "SELECT count(*) FROM pg_catalog.pg_database "
        "WHERE datistemplate AND datname IN ('template1', 'template0')"
    ),
    ProbeId.INVALID_DATABASES: (
        "SELECT datname FROM pg_catalog.pg_database WHERE datconnlimit = -2 ORDER BY datname"
    ),
    ProbeId.REPLICATION_SLOT_COUNT: "SELECT count(*) FROM pg_catalog.pg_replication_slots",
    ProbeId.LOGICAL_REPLICATION_SLOTS: (
        "SELECT slot_name, plugin, slot_type, database, active "
        "FROM pg_catalog.pg_replication_slots WHERE slot_type = 'logical' ORDER BY slot_name"
    ),
    ProbeId.INSTALLED_EXTENSION: (
        "SELECT extname, extversion FROM pg_catalog.pg_extension WHERE extname = $1"
    ),
    ProbeId.OUTDATED_EXTENSION_VERSION: (
        "SELECT name, installed_version, default_version "
        "FROM pg_catalog.pg_available_extensions "
        "WHERE name = $1 AND installed_version IS NOT NULL "
        "AND default_version != installed_version"
    ),
    ProbeId.SYSTEM_COMPOSITE_TYPE_COLUMNS: _TYPE_USAGE_TEMPLATE.format(
        seed=_SYSTEM_COMPOSITE_SEED
    ),
    ProbeId.REG_TYPE_COLUMNS: _TYPE_USAGE_TEMPLATE.format(seed=_REG_TYPE_SEED),
    ProbeId.TYPE_USAGE_COLUMNS: _TYPE_USAGE_TEMPLATE.format(seed=_BOUND_TYPE_SEED),
    ProbeId.USER_ENCODING_CONVERSIONS: (
        "SELECT c.oid AS conoid, c.conname, n.nspname "
        "FROM pg_catalog.pg_conversion c, pg_catalog.pg_namespace n "
        "WHERE c.connamespace = n.oid AND c.oid >= 16384 ORDER BY c.oid"
    ),
    ProbeId.USER_POSTFIX_OPERATORS: """
SELECT o.oid AS oproid, n.nspname AS oprnsp, o.oprname, tn.nspname AS typnsp, t.typname
FROM pg_catalog.pg_operator o, pg_catalog.pg_namespace n,
     pg_catalog.pg_type t, pg_catalog.pg_namespace tn
WHERE o.oprnamespace = n.oid
  AND o.oprleft = t.oid
  AND t.typnamespace = tn.oid
  AND o.oprright = 0
  AND o.oid >= 16384
ORDER BY o.oid
""",
    ProbeId.INCOMPATIBLE_POLYMORPHICS: f"""
SELECT 'aggregate' AS objkind, p.oid::pg_catalog.regprocedure::text AS objname
FROM pg_catalog.pg_proc AS p
JOIN pg_catalog.pg_aggregate AS a ON a.aggfnoid = p.oid
JOIN pg_catalog.pg_proc AS transfn ON transfn.oid = a.aggtransfn
WHERE p.oid >= 16384
  AND a.aggtransfn = ANY({_POLYMORPHIC_FUNCTIONS})
  AND a.aggtranstype = ANY({_POLYMORPHIC_TYPES})
UNION ALL
SELECT 'aggregate' AS objkind, p.oid::pg_catalog.regprocedure::text AS objname
FROM pg_catalog.pg_proc AS p
JOIN pg_catalog.pg_aggregate AS a ON a.aggfnoid = p.oid
JOIN pg_catalog.pg_proc AS finalfn ON finalfn.oid = a.aggfinalfn
WHERE p.oid >= 16384
  AND a.aggfinalfn = ANY({_POLYMORPHIC_FUNCTIONS})
  AND a.aggtranstype = ANY({_POLYMORPHIC_TYPES})
UNION ALL
SELECT 'operator' AS objkind, op.oid::pg_catalog.regoperator::text AS objname
FROM pg_catalog.pg_operator AS op
WHERE op.oid >= 16384
  AND oprcode = ANY({_POLYMORPHIC_FUNCTIONS})
  AND oprleft = ANY({_POLYMORPHIC_TYPES})
""",
    ProbeId.TABLES_WITH_OIDS: (
        "SELECT n.nspname, c.relname FROM pg_catalog.pg_class c, pg_catalog.pg_namespace n "
        "WHERE c.relnamespace = n.oid AND c.relhasoids AND n.nspname NOT IN ('pg_catalog') "
        "ORDER BY n.nspname, c.relname"
    ),
    ProbeId.SUBSCRIPTION_COUNT: "SELECT count(*) FROM pg_catalog.pg_subscription",
    ProbeId.SUBSCRIPTIONS: (
        "SELECT subname, subslotname, subenabled FROM pg_catalog.pg_subscription ORDER BY subname"
    ),
    ProbeId.TABLES_WITHOUT_PK_COUNT: (
        "SELECT count(*) FROM pg_catalog.pg_class c "
        "JOIN pg_catalog.pg_namespace n ON c.relnamespace = n.oid" + _TABLES_WITHOUT_PK_WHERE
    ),
    ProbeId.TABLES_WITHOUT_PK: """
SELECT n.nspname AS schema, c.relname AS table_name,
       CASE c.relreplident
            WHEN 'd' THEN 'DEFAULT'
            WHEN 'n' THEN 'NOTHING'
            WHEN 'f' THEN 'FULL'
            WHEN 'i' THEN 'INDEX'
       END AS replica_identity
FROM pg_catalog.pg_class c
JOIN pg_catalog.pg_namespace n ON c.relnamespace = n.oid
"""
    + _TABLES_WITHOUT_PK_WHERE
    + "ORDER BY n.nspname, c.relname",
    ProbeId.DDL_EVENT_TRIGGER_COUNT: (
        "SELECT count(*) FROM pg_catalog.pg_event_trigger" + _DDL_EVENT_TRIGGER_WHERE
    ),
    ProbeId.DDL_EVENT_TRIGGERS: (
        "SELECT evtname AS trigger_name, evtevent AS event, "
        "evtfoid::pg_catalog.regproc::text AS function_name, evtenabled AS enabled "
        "FROM pg_catalog.pg_event_trigger" + _DDL_EVENT_TRIGGER_WHERE + "ORDER BY evtname"
    ),
    ProbeId.CAPTURE_TRIGGER: (
        "SELECT evtname FROM pg_catalog.pg_event_trigger "
        "WHERE evtname = 'dts_capture_catalog_start'"
    ),
}
