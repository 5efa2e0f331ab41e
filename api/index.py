from mangum import Mangum

from app.main import app

# Mangum adapts FastAPI (ASGI) to serverless environments
handler = Mangum(app, lifespan="off")
