import pytest
from decimal import Decimal

from redis.exceptions import ConnectionError as RedisConnectionError

from garage import create_app
from garage.database import create_all, drop_all, get_session
from garage.models import Group, AppUser, UserRole, Customer, Vehicle, Part
from garage.services import cache_service


class FakeRedis:
    """In-memory stand-in for the redis.Redis calls made by CacheService."""

    def __init__(self):
        self.values = {}
        self.sets = {}
        self.ttls = {}
        self.down = False

    def _check(self):
        if self.down:
            raise RedisConnectionError('Connection refused')

    def ping(self):
        self._check()
        return True

    def get(self, key):
        self._check()
        return self.values.get(key)

    def setex(self, key, ttl, value):
        self._check()
        self.values[key] = value
        self.ttls[key] = ttl

    def sadd(self, key, *members):
        self._check()
        self.sets.setdefault(key, set()).update(members)

    def expire(self, key, ttl, nx=False, gt=False):
        self._check()
        current = self.ttls.get(key)
        if nx and current is not None:
            return False
        # Redis treats a key without TTL as infinite for GT
        if gt and (current is None or ttl <= current):
            return False
        self.ttls[key] = ttl
        return True

    def smembers(self, key):
        self._check()
        return set(self.sets.get(key, ()))

    def delete(self, *keys):
        self._check()
        removed = 0
        for key in keys:
            if self.values.pop(key, None) is not None or self.sets.pop(key, None) is not None:
                removed += 1
            self.ttls.pop(key, None)
        return removed

    def pipeline(self, transaction=True):
        return FakePipeline(self)


class FakePipeline:

    def __init__(self, client):
        self.client = client
        self.calls = []

    def __getattr__(self, name):
        def queue(*args, **kwargs):
            self.calls.append((name, args, kwargs))
            return self
        return queue

    def execute(self):
        self.client._check()
        return [getattr(self.client, name)(*args, **kwargs) for name, args, kwargs in self.calls]


@pytest.fixture(scope='session')
def app():
    """Create application instance for testing (in-memory SQLite)."""
    return create_app('config.TestConfig')


@pytest.fixture(scope='function')
def db(app):
    """
    Fresh schema for every test.

    The app context stays pushed for the whole test so requests made through
    the test client share it (and its scoped session) with the fixtures.
    """
    with app.app_context():
        create_all()
        yield
        get_session().remove()
        drop_all()


@pytest.fixture(scope='function')
def session(db):
    """Database session shared with the application."""
    return get_session()


@pytest.fixture(scope='function')
def client(app, db):
    """Create test client."""
    return app.test_client()


def _make_user(session, email, role=UserRole.USER.value, group=None):
    user = AppUser(
        email=email,
        full_name=email.split('@')[0].title(),
        role=role,
        group_id=group.id if group else None,
        active=True
    )
    user.set_password('password123')
    session.add(user)
    session.commit()
    return user


@pytest.fixture(scope='function')
def group(session):
    group = Group(name='Atelier Nord')
    session.add(group)
    session.commit()
    return group


@pytest.fixture(scope='function')
def other_group(session):
    group = Group(name='Atelier Sud')
    session.add(group)
    session.commit()
    return group


@pytest.fixture(scope='function')
def admin(session):
    return _make_user(session, 'admin@garage.test', role=UserRole.ADMIN.value)


@pytest.fixture(scope='function')
def owner(session, group):
    """Regular user member of `group`."""
    return _make_user(session, 'alice@garage.test', group=group)


@pytest.fixture(scope='function')
def teammate(session, group):
    """Another member of `group`."""
    return _make_user(session, 'bruno@garage.test', group=group)


@pytest.fixture(scope='function')
def outsider(session, other_group):
    """Regular user from another group."""
    return _make_user(session, 'chloe@garage.test', group=other_group)


@pytest.fixture(scope='function')
def loner(session):
    """Regular user without a group."""
    return _make_user(session, 'denis@garage.test')


@pytest.fixture(scope='function')
def customer(session):
    customer = Customer(first_name='Jean', last_name='Martin', email='jean.martin@example.com')
    session.add(customer)
    session.commit()
    return customer


@pytest.fixture(scope='function')
def vehicle(session, customer):
    vehicle = Vehicle(customer_id=customer.id, registration_plate='AB-123-CD', make='Renault', model='Clio')
    session.add(vehicle)
    session.commit()
    return vehicle


@pytest.fixture(scope='function')
def part(session):
    """Brake pads, 10 in stock."""
    part = Part(
        reference='PLQ-001',
        name='Plaquettes de frein',
        sale_price_ht=Decimal('45.00'),
        vat_rate=Decimal('20'),
        stock_qty=Decimal('10')
    )
    session.add(part)
    session.commit()
    return part


@pytest.fixture
def invoice_payload(customer, vehicle, part):
    """Builder for a valid invoice body: one labor line and 2 brake pads."""
    def build(**overrides):
        payload = {
            'customer_id': customer.id,
            'vehicle_id': vehicle.id,
            'notes': 'Révision',
            'items': [
                {'kind': 'LABOR', 'description': "Main-d'œuvre", 'quantity': 1,
                 'unit_price_ht': '52.00', 'vat_rate': 20},
                {'kind': 'PART', 'part_id': part.id, 'description': 'Plaquettes de frein',
                 'quantity': 2, 'unit_price_ht': '45.00', 'vat_rate': 20},
            ],
        }
        payload.update(overrides)
        return payload
    return build


@pytest.fixture
def login(client):
    """Put a user id in the session cookie of the test client."""
    def do_login(user):
        with client.session_transaction() as flask_session:
            flask_session['user_id'] = user.id
        return client
    return do_login


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def redis_cache(app, fake_redis, monkeypatch):
    """Swap the application cache for one backed by FakeRedis."""
    cache = cache_service.CacheService(app, client=fake_redis)
    monkeypatch.setattr(cache_service, '_cache_service', cache)
    return cache
