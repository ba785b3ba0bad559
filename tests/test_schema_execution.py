import pytest
import strawberry

from contextql import ContextQL, MutationOptions
from contextql.errors import DuplicateTable, SchemaFrozen


def _data(result):
    assert result.errors is None, result.errors
    return result.data


@pytest.mark.asyncio
async def test_query_filters_by_column(chinook):
    schema = chinook.to_strawberry()
    res = await schema.execute('{ Users(FirstName: "John") { Id FirstName } }')
    assert _data(res) == {'Users': [{'Id': 1, 'FirstName': 'John'}, {'Id': 3, 'FirstName': 'John'}]}


@pytest.mark.asyncio
async def test_query_paginates(chinook):
    schema = chinook.to_strawberry()
    res = await schema.execute('{ Users(take: 2, skip: 1) { Id } }')
    assert _data(res) == {'Users': [{'Id': 2}, {'Id': 3}]}
    # skip alone is ignored
    res = await schema.execute('{ Users(skip: 2) { Id } }')
    assert len(_data(res)['Users']) == 3


@pytest.mark.asyncio
async def test_nested_relations(chinook):
    schema = chinook.to_strawberry()
    res = await schema.execute('{ Users(Id: 1) { FirstName UserRoles { RoleId Role { Title } } } }')
    assert _data(res) == {'Users': [{
        'FirstName': 'John',
        'UserRoles': [
            {'RoleId': 1, 'Role': {'Title': 'Admin'}},
            {'RoleId': 2, 'Role': {'Title': 'Editor'}},
        ],
    }]}


@pytest.mark.asyncio
async def test_playlist_tracks(chinook):
    schema = chinook.to_strawberry()
    res = await schema.execute(
        '{ Playlists { Name PlaylistTracks { Track { Name } } } }'
    )
    playlists = _data(res)['Playlists']
    assert [p['Name'] for p in playlists] == ['Music', 'Heavy', 'Empty']
    assert [t['Track']['Name'] for t in playlists[1]['PlaylistTracks']] == ['Fast As a Shark', 'Restless and Wild']
    assert playlists[2]['PlaylistTracks'] == []


@pytest.mark.asyncio
async def test_fragments_and_aliases(chinook):
    schema = chinook.to_strawberry()
    res = await schema.execute(
        '{ first: Users(Id: 1) { ...Names } } fragment Names on UsersRecords { FirstName LastName }'
    )
    assert _data(res) == {'first': [{'FirstName': 'John', 'LastName': 'Doe'}]}


@pytest.mark.asyncio
async def test_custom_track_arguments(chinook):
    schema = chinook.to_strawberry()
    res = await schema.execute('{ Tracks(BytesLB: 4000000, BytesUB: 6000000) { TrackId } }')
    assert _data(res) == {'Tracks': [{'TrackId': 2}, {'TrackId': 4}]}
    res = await schema.execute('{ Tracks(BytesRange: "4000000-6000000") { TrackId } }')
    assert _data(res) == {'Tracks': [{'TrackId': 2}, {'TrackId': 4}]}


@pytest.mark.asyncio
async def test_dates_are_strings(chinook):
    schema = chinook.to_strawberry()
    res = await schema.execute('{ Tracks(Released: "1982-01-01") { Name Released } }')
    assert _data(res) == {'Tracks': [{'Name': 'Fast As a Shark', 'Released': '1982-01-01'}]}


@pytest.mark.asyncio
async def test_explicit_null_argument(chinook):
    schema = chinook.to_strawberry()
    res = await schema.execute('{ Users(Email: null) { Id } }')
    assert _data(res) == {'Users': [{'Id': 2}]}


@pytest.mark.asyncio
async def test_insert_update_delete(chinook):
    schema = chinook.to_strawberry()
    res = await schema.execute('mutation { insertUser(FirstName: "Ann", LastName: "Lee") { Id FirstName } }')
    assert _data(res) == {'insertUser': [{'Id': 4, 'FirstName': 'Ann'}]}

    res = await schema.execute('mutation { updateUser(filterBy_Id: 2, LastName: "Changed") { numRowsAffected } }')
    assert _data(res) == {'updateUser': {'numRowsAffected': 1}}
    res = await schema.execute('{ Users(LastName: "Changed") { Id } }')
    assert _data(res) == {'Users': [{'Id': 2}]}

    res = await schema.execute('mutation { deleteUser(FirstName: "John") { numRowsAffected } }')
    assert _data(res) == {'deleteUser': {'numRowsAffected': 2}}


@pytest.mark.asyncio
async def test_unscoped_update_is_an_error(chinook):
    schema = chinook.to_strawberry()
    res = await schema.execute('mutation { updateUser(LastName: "X") { numRowsAffected } }')
    assert res.errors
    assert 'Refusing' in res.errors[0].message
    check = await schema.execute('{ Users(LastName: "X") { Id } }')
    assert _data(check) == {'Users': []}


INTROSPECT = '''
query($name: String!) {
  __type(name: $name) {
    name
    description
    fields {
      name
      description
      args { name description type { kind name ofType { name } } }
    }
  }
}
'''


async def _type(schema, name):
    res = await schema.execute(INTROSPECT, variable_values={'name': name})
    return _data(res)['__type']


@pytest.mark.asyncio
async def test_root_types_are_named_after_the_registry(chinook):
    schema = chinook.to_strawberry()
    query = await _type(schema, 'chinook_query')
    assert [f['name'] for f in query['fields']] == ['Users', 'Roles', 'Tracks', 'Playlists']
    users = query['fields'][0]
    assert users['description'] == 'All records from the data context representing the database table, "Users".'
    assert [a['name'] for a in users['args']] == ['skip', 'take', 'Id', 'FirstName', 'LastName', 'Email', 'CreatedAt']

    mutation = await _type(schema, 'chinook_mutation')
    names = [f['name'] for f in mutation['fields']]
    assert names[:3] == ['insertUser', 'updateUser', 'deleteUser']
    assert 'insertTrack' in names and 'deletePlaylist' in names


@pytest.mark.asyncio
async def test_mutation_argument_shapes(chinook):
    schema = chinook.to_strawberry()
    mutation = await _type(schema, 'chinook_mutation')
    fields = {f['name']: f for f in mutation['fields']}
    assert fields['insertUser']['description'] == 'Insert a record into the "Users" database table.'

    insert_args = {a['name']: a['type'] for a in fields['insertUser']['args']}
    assert insert_args['FirstName'] == {'kind': 'NON_NULL', 'name': None, 'ofType': {'name': 'String'}}
    assert insert_args['LastName']['kind'] == 'SCALAR'

    update_args = [a['name'] for a in fields['updateUser']['args']]
    assert update_args[0] == 'filterBy_Id'
    assert 'Id' not in update_args

    track_insert = [a['name'] for a in fields['insertTrack']['args']]
    assert 'Composer' not in track_insert

    query = await _type(schema, 'chinook_query')
    tracks = next(f for f in query['fields'] if f['name'] == 'Tracks')
    args = {a['name']: a for a in tracks['args']}
    assert args['BytesLB']['description'] == 'Lower bound for bytes to check.'
    assert args['BytesRange']['type']['name'] == 'String'
    assert 'Bytes' not in args


@pytest.mark.asyncio
async def test_rows_affected_type(chinook):
    schema = chinook.to_strawberry()
    rows = await _type(schema, 'NumberOfRowsAffectedType')
    assert rows['description'] == 'Number of rows affected by the database transaction.'
    assert [f['name'] for f in rows['fields']] == ['numRowsAffected']


@pytest.mark.asyncio
async def test_repeated_builds_are_independent(chinook):
    first = chinook.to_strawberry()
    second = chinook.to_strawberry()
    assert first is not second
    assert str(first) == str(second)
    res = await second.execute('{ Roles { Title } }')
    assert len(_data(res)['Roles']) == 3


@pytest.mark.asyncio
async def test_build_root_query_alone(chinook):
    root = chinook.build_root_query(name='music', description='Music catalogue.')
    schema = strawberry.Schema(query=root)
    query = await _type(schema, 'music_query')
    assert query['description'] == 'Music catalogue.'


@pytest.mark.asyncio
async def test_all_mutations_disabled(role_context):
    gql = ContextQL('solo').register_table(
        role_context,
        options=MutationOptions(disable_inserts=True, disable_updates=True, disable_deletes=True),
    )
    assert gql.build_root_mutation() is None
    schema = gql.to_strawberry()
    res = await schema.execute('{ __schema { mutationType { name } } }')
    assert _data(res) == {'__schema': {'mutationType': None}}


@pytest.mark.asyncio
async def test_registry_is_frozen_after_build(chinook, role_context):
    chinook.to_strawberry()
    with pytest.raises(SchemaFrozen):
        chinook.register_table(role_context, name='Groups')
    with pytest.raises(SchemaFrozen):
        chinook.binding('Users').handles().query.remove_argument('LastName')


@pytest.mark.asyncio
async def test_duplicate_tables(user_context):
    gql = ContextQL('dup').register_table(user_context)
    with pytest.raises(DuplicateTable):
        gql.register_table(user_context)
    with pytest.raises(DuplicateTable):
        gql.register_table(user_context, name='User')
    gql.register_table(user_context, name='People')
    assert list(gql.bindings) == ['Users', 'People']
