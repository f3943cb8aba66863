SERVICE_NAME = "mediauth-api"
