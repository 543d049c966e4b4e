from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from phoneauth.api.routes import router
from phoneauth.api.admin_routes import router as admin_router
from phoneauth.api.errors import phone_auth_error_handler
from phoneauth.core.errors import PhoneAuthError
from phoneauth.identity.client import close_identity_client
from phoneauth.observability.logging import log
from phoneauth.settings import settings

@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    # Release the keep-alive pool held by the identity client
    close_identity_client()


app = FastAPI(title="Phone Login API", lifespan=lifespan)

# Browsers post the phone form cross-origin when the UI is hosted separately.
# Credentials are allowed so the session cookie can be set.
origins = [x.strip() for x in settings.CORS_ORIGINS.split(",") if x.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=bool(origins),
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router)
app.include_router(admin_router)
app.add_exception_handler(PhoneAuthError, phone_auth_error_handler)


@app.get("/health")
def health():
    return {"status": "ok"}


log(
    event="boot",
    smsEmailDomain=settings.SMS_EMAIL_DOMAIN,
    organizationRequired=bool(settings.ORGANIZATION_REQUIRED),
    clientIdConfigured=bool(settings.WORKOS_CLIENT_ID),
    apiKeyConfigured=bool(settings.WORKOS_API_KEY),
)
