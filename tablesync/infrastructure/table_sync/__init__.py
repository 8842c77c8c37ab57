"""
Pipeline de replicacion full-refresh: base origen -> base destino.

Cada tabla configurada tiene su propio worker, que corre por calendario
(auto trigger) y/o por disparo manual. Cada corrida:
- Introspecciona las columnas de la tabla origen (orden ordinal).
- Crea la tabla destino si no existe (nunca la altera despues).
- Lee todas las filas (con filtro opcional) a memoria.
- Reemplaza el contenido destino en una sola transaccion (TRUNCATE + INSERT).

Objetivos de diseño:
- Todo o nada: una fila que falla revierte la carga completa.
- Un resultado vacio en origen NO vacia el destino.
- Las corridas de una misma tabla nunca se solapan; tablas distintas
  corren en paralelo sin limite global.
"""
