from pathlib import Path


def test_upload_stores_file_and_returns_metadata(client, tmp_path) -> None:
    response = client.post(
        '/upload',
        files={'file': ('notes.txt', b'linked lists are fun', 'text/plain')},
    )

    assert response.status_code == 200
    body = response.json()
    assert body['message'] == 'File uploaded'
    stored = body['file']
    assert stored['original_name'] == 'notes.txt'
    assert stored['stored_name'].endswith('-notes.txt')
    assert stored['size'] == len(b'linked lists are fun')
    assert Path(stored['path']).parent == tmp_path / 'uploads'
    assert Path(stored['path']).read_bytes() == b'linked lists are fun'


def test_upload_without_file_is_rejected(client) -> None:
    response = client.post('/upload', data={'comment': 'forgot the file'})

    assert response.status_code == 400
    assert response.json() == {'error': 'No file uploaded'}
