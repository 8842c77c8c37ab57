"""
Conexiones a las bases origen y destino.
"""
