"""WSGI server runner with TLS settings, and server handler plugins."""