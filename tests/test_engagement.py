import os
import sys

import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from models import db, CommunityPost, CommunityPostComment, ResidentReporter, ResidentReporterComment
from services import engagement


@pytest.fixture
def post_id(app):
    with app.app_context():
        post = CommunityPost(caption='공유주방 파티', hashtags=['입주민'])
        db.session.add(post)
        db.session.commit()
        return post.id


@pytest.fixture
def article_id(app):
    with app.app_context():
        article = ResidentReporter(title='우리 동네', content='# 안녕', author_name='기자', status='approved')
        db.session.add(article)
        db.session.commit()
        return article.id


def test_like_increments_every_call(client, post_id):
    assert client.post(f'/api/community-posts/{post_id}/like').get_json() == {'likes': 1}
    assert client.post(f'/api/community-posts/{post_id}/like').get_json() == {'likes': 2}


def test_like_unknown_parent(client):
    rv = client.post('/api/community-posts/missing/like')
    assert rv.status_code == 404
    assert rv.get_json()['error'] == 'Post not found'
    assert client.post('/api/spaceships/1/like').status_code == 404


def test_like_reporter_article_only_when_approved(app, client, article_id):
    assert client.post(f'/api/resident-reporter/{article_id}/like').get_json() == {'likes': 1}
    with app.app_context():
        db.session.get(ResidentReporter, article_id).status = 'pending'
        db.session.commit()
    assert client.post(f'/api/resident-reporter/{article_id}/like').status_code == 404


def test_anonymous_comment_defaults_nickname(app, client, post_id):
    rv = client.post(f'/api/community-posts/{post_id}/comments', json={'content': '좋아요!'})
    assert rv.status_code == 201
    assert rv.get_json()['nickname'] == '익명'

    rv = client.post(f'/api/community-posts/{post_id}/comments', json={'nickname': '이웃', 'content': '저도요'})
    assert rv.get_json()['nickname'] == '이웃'

    comments = client.get(f'/api/community-posts/{post_id}/comments').get_json()
    assert [c['content'] for c in comments] == ['좋아요!', '저도요']
    with app.app_context():
        assert db.session.get(CommunityPost, post_id).comment_count == 2


def test_signed_in_comment_uses_account_name(user_client, post_id):
    rv = user_client.post(f'/api/community-posts/{post_id}/comments', json={'nickname': 'fake', 'content': 'hi'})
    assert rv.status_code == 201
    body = rv.get_json()
    assert body['nickname'] == '길동 홍'
    assert body['userId']


def test_comment_validation(client, post_id):
    assert client.post(f'/api/community-posts/{post_id}/comments', json={'content': '   '}).status_code == 400
    rv = client.post(f'/api/community-posts/{post_id}/comments', json={'content': 'x' * 2001})
    assert rv.status_code == 400
    assert 'content' in rv.get_json()['details']


def test_reporter_comments_require_login(client, user_client, article_id):
    assert client.post(f'/api/resident-reporter/{article_id}/comments', json={'content': 'hi'}).status_code == 401
    rv = user_client.post(f'/api/resident-reporter/{article_id}/comments', json={'content': 'hi'})
    assert rv.status_code == 201


def test_delete_comment_is_admin_only(app, client, user_client, admin_client, post_id):
    comment_id = client.post(f'/api/community-posts/{post_id}/comments', json={'content': 'x'}).get_json()['id']
    url = f'/api/community-posts/{post_id}/comments/{comment_id}'

    assert client.delete(url).status_code == 401
    assert user_client.delete(url).status_code == 403
    assert admin_client.delete(url).status_code == 204
    assert admin_client.delete(url).status_code == 404
    with app.app_context():
        assert db.session.get(CommunityPost, post_id).comment_count == 0


def test_delete_comment_of_other_parent_is_404(app, client, admin_client, post_id):
    with app.app_context():
        other = CommunityPost(caption='other')
        db.session.add(other)
        db.session.commit()
        other_id = other.id
    comment_id = client.post(f'/api/community-posts/{post_id}/comments', json={'content': 'x'}).get_json()['id']
    assert admin_client.delete(f'/api/community-posts/{other_id}/comments/{comment_id}').status_code == 404


def test_comment_count_never_negative(app, post_id):
    with app.app_context():
        comment = CommunityPostComment(post_id=post_id, nickname='n', content='c')
        db.session.add(comment)
        db.session.commit()
        # count drifted to zero
        db.session.get(CommunityPost, post_id).comment_count = 0
        db.session.commit()

        engagement.delete_comment(engagement.get_target('community-posts'), post_id, comment.id)
        db.session.expire_all()
        assert db.session.get(CommunityPost, post_id).comment_count == 0


def test_deleting_parent_deletes_comments(app, client, admin_client, article_id, user_client):
    user_client.post(f'/api/resident-reporter/{article_id}/comments', json={'content': 'hi'})
    assert admin_client.delete(f'/api/admin/resident-reporter/{article_id}').status_code == 204
    with app.app_context():
        assert db.session.query(ResidentReporterComment).count() == 0
