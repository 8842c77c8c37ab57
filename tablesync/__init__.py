"""
tablesync: replicacion periodica full-refresh de tablas entre bases de datos.
"""
