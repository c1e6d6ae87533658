import re
import sys
from pathlib import Path

CONFIG_PATH = Path('app/config.py')

VERSION_RE = re.compile(r'APP_VERSION\s*:\s*str\s*=\s*"([0-9]+\.[0-9]+\.[0-9]+)"')

PARTS = ('major', 'minor', 'patch')


def next_version(current: str, part: str) -> str:
    major, minor, patch = map(int, current.split('.'))
    if part == 'major':
        return f'{major + 1}.0.0'
    if part == 'minor':
        return f'{major}.{minor + 1}.0'
    return f'{major}.{minor}.{patch + 1}'


def bump(part: str):
    if part not in PARTS:
        print(f'Part must be one of: {", ".join(PARTS)}', file=sys.stderr)
        sys.exit(1)
    text = CONFIG_PATH.read_text(encoding='utf-8')
    m = VERSION_RE.search(text)
    if not m:
        print('APP_VERSION not found in app/config.py', file=sys.stderr)
        sys.exit(1)
    new_version = next_version(m.group(1), part)
    CONFIG_PATH.write_text(VERSION_RE.sub(f'APP_VERSION: str = "{new_version}"', text), encoding='utf-8')
    print(new_version)


if __name__ == '__main__':
    if len(sys.argv) != 2:
        print('Usage: python scripts/bump_version.py [major|minor|patch]')
        sys.exit(1)
    bump(sys.argv[1])
