from sqlalchemy import event


def enable_savepoints(engine):
    """pysqlite defers BEGIN, which breaks SAVEPOINT; emit it ourselves."""

    @event.listens_for(engine, "connect")
    def _disable_pysqlite_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    return engine
