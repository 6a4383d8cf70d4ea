#!/usr/bin/env python3
"""
协作笔记表结构迁移脚本

创建 candidates / users / user_tokens / notes / notifications 表，
可选地从 JSON 文件导入用户和候选人（格式同 config/seed_demo.json）。

使用方法：
    python scripts/migrations/create_collab_tables.py --dry-run                      # 只打印 SQL
    python scripts/migrations/create_collab_tables.py                                # 建表
    python scripts/migrations/create_collab_tables.py --seed config/seed_demo.json   # 建表并导入演示数据
"""

import argparse
import json
import sys
from pathlib import Path

# 添加项目根目录到 Python 路径
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root / "backend"))

import psycopg2

from domains.infra.store import get_database_url

SCHEMA_SQL = [
    '''
    CREATE TABLE IF NOT EXISTS candidates (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        email TEXT NOT NULL DEFAULT '',
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    )
    ''',
    '''
    CREATE TABLE IF NOT EXISTS users (
        id TEXT PRIMARY KEY,
        display_name TEXT NOT NULL,
        email TEXT NOT NULL DEFAULT '',
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    )
    ''',
    '''
    CREATE TABLE IF NOT EXISTS user_tokens (
        token TEXT PRIMARY KEY,
        user_id TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        expires_at TIMESTAMPTZ
    )
    ''',
    '''
    CREATE TABLE IF NOT EXISTS notes (
        seq BIGSERIAL UNIQUE,
        id TEXT PRIMARY KEY,
        candidate_id TEXT NOT NULL REFERENCES candidates(id),
        author_id TEXT NOT NULL,
        author_name TEXT NOT NULL DEFAULT '',
        raw_text TEXT NOT NULL,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    )
    ''',
    'CREATE INDEX IF NOT EXISTS idx_notes_candidate ON notes (candidate_id, created_at)',
    '''
    CREATE TABLE IF NOT EXISTS notifications (
        seq BIGSERIAL UNIQUE,
        id TEXT PRIMARY KEY,
        note_id TEXT NOT NULL REFERENCES notes(id),
        candidate_id TEXT NOT NULL,
        candidate_name TEXT NOT NULL DEFAULT '',
        recipient_user_id TEXT NOT NULL,
        message TEXT NOT NULL DEFAULT '',
        is_read BOOLEAN NOT NULL DEFAULT FALSE,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        UNIQUE (note_id, recipient_user_id)
    )
    ''',
    'CREATE INDEX IF NOT EXISTS idx_notifications_recipient ON notifications (recipient_user_id, is_read)',
]


def load_seed(path: Path) -> dict:
    data = json.loads(path.read_text(encoding='utf-8'))
    return {
        'users': data.get('users', []),
        'candidates': data.get('candidates', []),
    }


def apply_seed(cursor, seed: dict) -> None:
    for user in seed['users']:
        cursor.execute(
            '''INSERT INTO users (id, display_name, email) VALUES (%s, %s, %s)
            ON CONFLICT (id) DO NOTHING''',
            (user['id'], user['display_name'], user.get('email', ''))
        )
        if user.get('token'):
            cursor.execute(
                '''INSERT INTO user_tokens (token, user_id) VALUES (%s, %s)
                ON CONFLICT (token) DO NOTHING''',
                (user['token'], user['id'])
            )
    for candidate in seed['candidates']:
        cursor.execute(
            '''INSERT INTO candidates (id, name, email) VALUES (%s, %s, %s)
            ON CONFLICT (id) DO NOTHING''',
            (candidate['id'], candidate['name'], candidate.get('email', ''))
        )


def main():
    parser = argparse.ArgumentParser(description='创建协作笔记表')
    parser.add_argument('--dry-run', action='store_true', help='只打印 SQL，不连接数据库')
    parser.add_argument('--seed', type=Path, help='导入用户和候选人的 JSON 文件')
    parser.add_argument('--database-url', default=None, help='默认读取 DATABASE_URL')
    args = parser.parse_args()

    seed = load_seed(args.seed) if args.seed else None

    if args.dry_run:
        for sql in SCHEMA_SQL:
            print(sql.strip() + ';\n')
        if seed:
            print(f"-- 将导入 {len(seed['users'])} 个用户, {len(seed['candidates'])} 个候选人")
        return 0

    conn = psycopg2.connect(args.database_url or get_database_url())
    try:
        with conn:
            with conn.cursor() as cursor:
                for sql in SCHEMA_SQL:
                    cursor.execute(sql)
                if seed:
                    apply_seed(cursor, seed)
    finally:
        conn.close()

    print(f"已创建 {len(SCHEMA_SQL)} 个表/索引")
    if seed:
        print(f"已导入 {len(seed['users'])} 个用户, {len(seed['candidates'])} 个候选人")
    return 0


if __name__ == '__main__':
    sys.exit(main())
