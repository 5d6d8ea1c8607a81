"""HTTP client, request executors, status handlers and client plugins."""