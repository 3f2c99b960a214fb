APP_CONFIG_VALUES = {
    "server": "sql.example.internal",
    "port": 1433,
    "database": "app",
    "username": "app_user",
    "password": "s3cret",
}
