"""Tests for the Rich console factory and theme."""

from capsactl.output.console import CAPSA_THEME, create_console, get_output, style_for_status


class TestConsole:
    def test_renders_to_buffer(self) -> None:
        console = create_console(no_color=True)
        console.print("hello")
        assert get_output(console) == "hello\n"

    def test_width_override(self) -> None:
        assert create_console(width=40).width == 40

    def test_theme_has_status_styles(self) -> None:
        for status in ("backlog", "doing", "done"):
            assert style_for_status(status) in CAPSA_THEME.styles

    def test_unknown_status_unstyled(self) -> None:
        assert style_for_status("someday") == ""
