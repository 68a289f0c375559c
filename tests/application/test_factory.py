import logging

from quizbox.application.config import resolve_config
from quizbox.application.factory import backup_all, build_app_context, run_startup_merge


def test_context_reloads_saved_state(data_dir, clock, question_factory):
    ctx = build_app_context(resolve_config({"data_dir": data_dir}), clock=clock)
    ctx.content.save_question(question_factory())
    ctx.study.record_answer("Math", "2+2", True, 500)

    again = build_app_context(resolve_config({"data_dir": data_dir}), clock=clock)
    assert again.content.all_themes() == ["Math"]
    assert again.leitner.get_card("Math", "2+2").total_attempts == 1
    assert len(again.statistics.results()) == 1


def test_startup_merge_runs_when_configured(tmp_path, clock, question_factory):
    source = build_app_context(resolve_config({"data_dir": tmp_path / "source"}), clock=clock)
    source.content.save_question(question_factory(theme="Bio", title="Cell"))

    ctx = build_app_context(
        resolve_config(
            {
                "data_dir": tmp_path / "local",
                "merge_on_startup": True,
                "merge_dir": tmp_path / "source",
            }
        ),
        clock=clock,
    )
    assert ctx.content.question_exists("Bio", "Cell")


def test_startup_merge_with_bad_directory_does_not_fail(tmp_path, clock, caplog):
    config = resolve_config(
        {"data_dir": tmp_path / "local", "merge_on_startup": True, "merge_dir": tmp_path / "nope"}
    )
    with caplog.at_level(logging.WARNING):
        ctx = build_app_context(config, clock=clock)
    assert "Skipping startup merge" in caplog.text
    assert run_startup_merge(ctx) is None


def test_startup_merge_without_directory(app_ctx, caplog):
    app_ctx.config.merge_on_startup = True
    with caplog.at_level(logging.WARNING):
        assert run_startup_merge(app_ctx) is None
    assert "merge_dir is not configured" in caplog.text


def test_backup_all_skips_missing_files(app_ctx, question_factory):
    assert backup_all(app_ctx) == []

    app_ctx.content.save_question(question_factory())
    handles = backup_all(app_ctx, "nightly")
    names = sorted(h.source.name for h in handles)
    # Creating the first theme also unlocks an achievement
    assert names == ["achievements.dat", "quiz_questions.dat"]
    assert all(h.path.name.startswith("nightly_") for h in handles)
    assert all(h.path.exists() for h in handles)


def test_malformed_legacy_file_does_not_block_startup(data_dir, clock):
    (data_dir / "quiz_statistics.dat").write_text('{"allResults": 7}', encoding="utf-8")
    (data_dir / "quiz_questions.dat").write_text(
        '{"questionsByTheme": {"Math": 5}}', encoding="utf-8"
    )

    ctx = build_app_context(resolve_config({"data_dir": data_dir}), clock=clock)

    assert ctx.statistics.results() == []
    assert ctx.content.all_themes() == ["Math"]
