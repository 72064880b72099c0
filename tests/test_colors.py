from src.utils.colors import Colors


def test_colorize():
    assert Colors.colorize("x", Colors.RED) == f"{Colors.RED}x{Colors.RESET}"


def test_header():
    assert Colors.header("Task List") == f"{Colors.BOLD}{Colors.CYAN}Task List{Colors.RESET}"


def test_task_colors():
    assert Colors.get_task_color("interview") == Colors.YELLOW
    assert Colors.get_task_color("CALL_LETTER") == Colors.GREEN
    assert Colors.get_task_color("test") == Colors.RED
    assert Colors.get_task_color("shortlist") == Colors.BLUE


def test_unknown_task_color():
    assert Colors.get_task_color("other") == Colors.WHITE
    assert Colors.get_task_color(None) == Colors.WHITE


def test_status_helpers():
    assert Colors.error("e").startswith(Colors.RED)
    assert Colors.warning("w").startswith(Colors.YELLOW)
    assert Colors.success("s").startswith(Colors.GREEN)
