import uuid

import pytest
from sqlalchemy import create_engine, inspect
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from libapp.auth import (
    AuthModule,
    LoginDTO,
    RegisterDTO,
    Repository,
    Service,
    User,
    migrate,
    new_module,
)
from libapp.config import Config
from libapp.errors import AppError
from libapp.jwt_tokens import parse_token, validate_token
from libapp.rbac import Role
from libapp.server import Container, new_server

EMAIL = "reader@example.com"


def make_config():
    password = "password"
    return Config(
        jwt_secret="secret",
        jwt_expiration=24,
        db_host="localhost",
        db_port="5432",
        db_user="user",
        db_password=password,
        db_name="library",
        memory=1024,
        iterations=1,
        parallelism=1,
        key_length=32,
        salt_length=16,
    )


@pytest.fixture
def config():
    return make_config()


@pytest.fixture
def engine():
    return create_engine("sqlite://")


@pytest.fixture
def service(engine, config):
    migrate(engine)
    return Service(Repository(engine), config)


def register_dto(email=EMAIL, name="Reader"):
    password = "password"
    return RegisterDTO(email=email, password=password, name=name)


def login_dto(email=EMAIL):
    password = "password"
    return LoginDTO(email=email, password=password)


def assign_role(engine, user_id, role_name):
    with Session(engine) as session:
        role = Role(id=uuid.uuid4(), name=role_name)
        session.add(role)
        session.flush()
        session.get(User, user_id).role_id = role.id
        session.commit()


# --- DTOs ---


def test_register_dto_from_json_valid():
    dto = RegisterDTO.from_json({"email": EMAIL, "password": "password", "name": "Reader"})
    assert dto == register_dto()


@pytest.mark.parametrize(
    ("data", "field"),
    [
        ({"password": "password", "name": "Reader"}, "Email"),
        ({"email": "not-an-email", "password": "password", "name": "Reader"}, "Email"),
        ({"email": EMAIL, "password": "token", "name": "Reader"}, "Password"),
        ({"email": EMAIL, "password": "password"}, "Name"),
    ],
)
def test_register_dto_rejects(data, field):
    with pytest.raises(ValueError, match=field):
        RegisterDTO.from_json(data)


def test_register_dto_rejects_non_string():
    with pytest.raises(ValueError):
        RegisterDTO.from_json({"email": EMAIL, "password": 123456, "name": "Reader"})


def test_login_dto_requires_password():
    with pytest.raises(ValueError, match="Password"):
        LoginDTO.from_json({"email": EMAIL})


def test_login_dto_accepts_short_password():
    dto = LoginDTO.from_json({"email": EMAIL, "password": "secret"})
    assert dto.password == "secret"


# --- migration and repository ---


def test_migrate_creates_tables(engine):
    migrate(engine)
    assert {"users", "roles"} <= set(inspect(engine).get_table_names())


def test_repository_find_by_email_and_id(service, engine):
    user = service.register(register_dto())
    repo = Repository(engine)
    assert repo.find_by_email(EMAIL).id == user.id
    assert repo.find_by_id(user.id).email == EMAIL


def test_repository_missing_raises_lookup_error(service, engine):
    repo = Repository(engine)
    with pytest.raises(LookupError):
        repo.find_by_email("missing@example.com")
    with pytest.raises(LookupError):
        repo.find_by_id(uuid.uuid4())


# --- service ---


def test_register_stores_hash_not_password(service):
    user = service.register(register_dto())
    assert user.email == EMAIL
    assert user.name == "Reader"
    assert user.password != "password"
    assert "." in user.password


def test_register_duplicate_email_fails(service):
    service.register(register_dto())
    with pytest.raises(IntegrityError):
        service.register(register_dto(name="Other"))


def test_login_token_identifies_user(service):
    user = service.register(register_dto())
    token = service.login(login_dto())
    found = validate_token(token, service, "secret")
    assert found.id == user.id
    assert found.email == EMAIL
    assert found.role == ""


def test_login_wrong_password(service):
    service.register(register_dto())
    password = "secret"
    with pytest.raises(AppError) as info:
        service.login(LoginDTO(email=EMAIL, password=password))
    assert info.value.status_code == 401
    assert info.value.message == "invalid credentials"


def test_login_unknown_email(service):
    with pytest.raises(AppError) as info:
        service.login(login_dto("missing@example.com"))
    assert info.value.status_code == 401
    assert info.value.message == "invalid credentials"


def test_get_user_reports_role(service, engine):
    user = service.register(register_dto())
    assign_role(engine, user.id, "librarian")
    found = service.get_user(user.id)
    assert (found.id, found.email, found.role) == (user.id, EMAIL, "librarian")
    assert parse_token(service.login(login_dto()), "secret").role == "librarian"


def test_get_user_unknown_raises(service):
    with pytest.raises(LookupError):
        service.get_user(uuid.uuid4())


# --- HTTP ---


@pytest.fixture
def client(engine, config):
    module = new_module(Container(db=engine, config=config))
    return new_server([module]).test_client()


def register_via(client):
    return client.post(
        "/api/auth/register",
        json={"email": EMAIL, "password": "password", "name": "Reader"},
    )


def login_via(client):
    resp = client.post("/api/auth/login", json={"email": EMAIL, "password": "password"})
    return resp.get_json()["data"]["token"]


def test_new_module_returns_auth_module(engine, config):
    module = new_module(Container(db=engine, config=config))
    assert isinstance(module, AuthModule)
    assert "users" in inspect(engine).get_table_names()


def test_http_register_created(client):
    resp = register_via(client)
    body = resp.get_json()
    assert resp.status_code == 201
    assert body["success"] is True
    assert body["data"]["email"] == EMAIL
    assert "password" not in body["data"]


def test_http_register_invalid_body(client):
    resp = client.post("/api/auth/register", json={"email": "bad"})
    assert resp.status_code == 400
    assert resp.get_json()["success"] is False


def test_http_register_duplicate_is_server_error(client):
    register_via(client)
    resp = register_via(client)
    assert resp.status_code == 500
    assert resp.get_json()["error"]


def test_http_login_and_me(client):
    created = register_via(client).get_json()["data"]
    token = login_via(client)
    resp = client.get("/api/auth/me", headers={"Authorization": "Bearer " + token})
    assert resp.status_code == 200
    assert resp.get_json()["data"] == {"id": created["id"], "email": EMAIL, "role": ""}


def test_http_login_bad_credentials(client):
    register_via(client)
    resp = client.post("/api/auth/login", json={"email": EMAIL, "password": "secret"})
    body = resp.get_json()
    assert resp.status_code == 401
    assert body == {"success": False, "error": "invalid credentials"}


def test_http_me_without_header(client):
    resp = client.get("/api/auth/me")
    assert resp.status_code == 401
    assert resp.get_json()["error"] == "Unauthorized"


def test_http_me_with_bad_token(client):
    resp = client.get("/api/auth/me", headers={"Authorization": "Bearer token"})
    assert resp.status_code == 401
    assert resp.get_json()["error"] == "Invalid token or user not found"