import httpx
import openai


def _login(client) -> None:
    client.post(
        '/register',
        data={
            'username': 'ada',
            'full_name': 'Ada Lovelace',
            'email': 'ada@example.edu',
            'password': 'analytical',
        },
        follow_redirects=False,
    )
    client.post('/login', data={'email': 'ada@example.edu', 'password': 'analytical'}, follow_redirects=False)


def test_ask_ai_page_requires_session(client) -> None:
    response = client.get('/ask-ai')

    assert response.status_code == 401
    assert response.json() == {'error': 'Login required.'}


def test_ask_ai_page_with_session(client) -> None:
    _login(client)

    response = client.get('/ask-ai')

    assert response.status_code == 200
    assert response.json()['user']['username'] == 'ada'


def test_ask_without_session_is_unauthorized_even_with_empty_question(client, fake_openai) -> None:
    response = client.post('/ask-ai', json={'question': ''})

    assert response.status_code == 401
    assert fake_openai.completions.calls == []


def test_ask_with_empty_question_is_bad_request(client) -> None:
    _login(client)

    response = client.post('/ask-ai', json={'question': '  '})

    assert response.status_code == 400
    assert response.json() == {'error': 'Question is required.'}


def test_ask_without_body_is_bad_request(client) -> None:
    _login(client)

    response = client.post('/ask-ai')

    assert response.status_code == 400


def test_ask_returns_answer(client, fake_openai) -> None:
    _login(client)

    response = client.post('/ask-ai', json={'question': 'What is a tuple?'})

    assert response.status_code == 200
    assert response.json() == {'answer': 'A list is mutable; a tuple is not.'}
    assert fake_openai.completions.calls[0]['messages'][-1] == {'role': 'user', 'content': 'What is a tuple?'}


def test_ask_hides_provider_failure_details(client, fake_openai) -> None:
    _login(client)
    request = httpx.Request('POST', 'https://api.openai.com/v1/chat/completions')
    fake_openai.completions.error = openai.APIConnectionError(message='secret upstream detail', request=request)

    response = client.post('/ask-ai', json={'question': 'What is a tuple?'})

    assert response.status_code == 500
    assert 'error' in response.json()
    assert 'secret upstream detail' not in response.text


def test_ask_with_non_text_question_without_session_is_unauthorized(client, fake_openai) -> None:
    response = client.post('/ask-ai', json={'question': 123})

    assert response.status_code == 401
    assert response.json() == {'error': 'Login required.'}


def test_ask_with_non_text_question_is_bad_request(client, fake_openai) -> None:
    _login(client)

    response = client.post('/ask-ai', json={'question': 123})

    assert response.status_code == 400
    assert 'error' in response.json()
    assert fake_openai.completions.calls == []


def test_ask_with_invalid_json_is_bad_request(client) -> None:
    _login(client)

    response = client.post('/ask-ai', content=b'not json', headers={'content-type': 'application/json'})

    assert response.status_code == 400
    assert response.json() == {'error': 'Request body must be JSON with a text "question".'}


def test_ask_with_invalid_json_without_session_is_unauthorized(client) -> None:
    response = client.post('/ask-ai', content=b'not json', headers={'content-type': 'application/json'})

    assert response.status_code == 401
