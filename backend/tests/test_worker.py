from sweeper_api.services.filesystem import LocalFileSystem
from sweeper_api.services.storage import ProjectStore
from sweeper_api.workers.worker import run_once

NOW = 1_700_000_000.0


class AgedFS(LocalFileSystem):
    def created_at(self, path):
        # всё, что начинается на old, считаем созданным двое суток назад
        return NOW - 48 * 3600 if path.name.startswith("old") else NOW


def test_run_once_removes_expired(tmp_path):
    store = ProjectStore(tmp_path / "projects", fs=AgedFS(), clock=lambda: NOW)
    (store.root / "old_1_aaaaaa").mkdir(parents=True)
    (store.root / "new_1_bbbbbb").mkdir()

    assert run_once(store) == ["old_1_aaaaaa"]
    assert run_once(store) == []
    assert [p.name for p in store.root.iterdir()] == ["new_1_bbbbbb"]
