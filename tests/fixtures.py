"""Test fixtures for populating test data."""

from datetime import date, datetime

import pytest
from sqlalchemy import insert

from contextql import ContextQL, SqlContext, relation
from tests.models import Playlist, PlaylistTrack, Role, Track, User, UserRole

USERS = [
    {'Id': 1, 'FirstName': 'John', 'LastName': 'Doe', 'Email': 'john@example.com', 'CreatedAt': datetime(2024, 1, 1, 10, 0)},
    {'Id': 2, 'FirstName': 'Jane', 'LastName': 'Roe', 'Email': None, 'CreatedAt': None},
    {'Id': 3, 'FirstName': 'John', 'LastName': 'Smith', 'Email': 'smith@example.com', 'CreatedAt': datetime(2024, 3, 5, 8, 30)},
]
ROLES = [
    {'Id': 1, 'Title': 'Admin'},
    {'Id': 2, 'Title': 'Editor'},
    {'Id': 3, 'Title': 'Viewer'},
]
USER_ROLES = [
    {'Id': 1, 'UserId': 1, 'RoleId': 1},
    {'Id': 2, 'UserId': 1, 'RoleId': 2},
    {'Id': 3, 'UserId': 2, 'RoleId': 3},
]
TRACKS = [
    {'TrackId': 1, 'Name': 'For Those About To Rock', 'Composer': 'Angus Young', 'Milliseconds': 343719,
     'Bytes': 11170334, 'UnitPrice': 0.99, 'Released': date(1981, 11, 23)},
    {'TrackId': 2, 'Name': 'Balls to the Wall', 'Composer': None, 'Milliseconds': 342562,
     'Bytes': 5510424, 'UnitPrice': 0.99, 'Released': None},
    {'TrackId': 3, 'Name': 'Fast As a Shark', 'Composer': 'F. Baltes', 'Milliseconds': 230619,
     'Bytes': 3990994, 'UnitPrice': 0.99, 'Released': date(1982, 1, 1)},
    {'TrackId': 4, 'Name': 'Restless and Wild', 'Composer': 'F. Baltes', 'Milliseconds': 252051,
     'Bytes': 4331779, 'UnitPrice': 0.99, 'Released': None},
    {'TrackId': 5, 'Name': 'Princess of the Dawn', 'Composer': 'Deaffy', 'Milliseconds': 375418,
     'Bytes': 6290521, 'UnitPrice': 1.99, 'Released': None},
]
PLAYLISTS = [
    {'PlaylistId': 1, 'Name': 'Music'},
    {'PlaylistId': 2, 'Name': 'Heavy'},
    {'PlaylistId': 3, 'Name': 'Empty'},
]
PLAYLIST_TRACKS = [
    {'PlaylistId': 1, 'TrackId': 1},
    {'PlaylistId': 1, 'TrackId': 2},
    {'PlaylistId': 1, 'TrackId': 3},
    {'PlaylistId': 2, 'TrackId': 3},
    {'PlaylistId': 2, 'TrackId': 4},
]


@pytest.fixture
async def populated_db(engine):
    """Insert the shared sample rows and return them by table."""
    async with engine.begin() as conn:
        await conn.execute(insert(User.__table__), USERS)
        await conn.execute(insert(Role.__table__), ROLES)
        await conn.execute(insert(UserRole.__table__), USER_ROLES)
        await conn.execute(insert(Track.__table__), TRACKS)
        await conn.execute(insert(Playlist.__table__), PLAYLISTS)
        await conn.execute(insert(PlaylistTrack.__table__), PLAYLIST_TRACKS)
    return {
        'users': USERS,
        'roles': ROLES,
        'user_roles': USER_ROLES,
        'tracks': TRACKS,
        'playlists': PLAYLISTS,
        'playlist_tracks': PLAYLIST_TRACKS,
    }


@pytest.fixture
def user_context(engine):
    return SqlContext(engine, User).has_many(
        'UserRoles', UserRole, ('Id', 'UserId'),
        then=[relation('Role', Role, ('RoleId', 'Id'), many=False)],
    )


@pytest.fixture
def role_context(engine):
    return SqlContext(engine, Role)


@pytest.fixture
def track_context(engine):
    return SqlContext(engine, Track)


@pytest.fixture
def playlist_context(engine):
    return SqlContext(engine, Playlist).has_many(
        'PlaylistTracks', PlaylistTrack, ('PlaylistId', 'PlaylistId'),
        then=[relation('Track', Track, ('TrackId', 'TrackId'), many=False)],
    )


def configure_tracks(c):
    c.query.add_argument(
        'BytesLB', int, lambda m, v: m.Bytes >= v,
        description='Lower bound for bytes to check.',
    )
    c.query.add_argument(
        'BytesUB', int, lambda m, v: m.Bytes <= v,
        description='Upper bound for bytes to check.',
    )
    c.query.change_argument(
        lambda m: m.Bytes.as_('BytesRange')
        .described_as('Range of bytes, given as "low-high".')
        .typed_as(str)
        .to(lambda m, v: m.Bytes.between(*map(int, v.split('-'))))
    )
    c.insert.remove_argument(lambda m: m.Composer)


@pytest.fixture
def chinook(populated_db, user_context, role_context, track_context, playlist_context):
    """Registry over the sample database (not yet built)."""
    return (
        ContextQL('chinook')
        .register_table(user_context)
        .register_table(role_context)
        .register_table(track_context, configure_tracks)
        .register_table(playlist_context)
    )
