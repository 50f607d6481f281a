"""Shared fixtures for codeintel tests."""

import io
import tempfile
import zipfile
from pathlib import Path
from typing import Generator

import pytest

from codeintel.config import AppConfig, ParserConfig, ServiceConfig
from codeintel.extraction.extractor import EntityExtractor
from codeintel.extraction.models.project import ProjectStructure
from codeintel.index.engine import IndexEngine
from codeintel.semantic.analyzer import SemanticAnalyzer

# ============================================================================
# Sample Java sources
# ============================================================================

CALCULATOR_SOURCE = """package com.example.calc;

/**
 * Simple arithmetic calculator.
 * @author codeintel
 */
public class Calculator extends BaseCalculator implements Operation, Comparable<Calculator> {
    /** Running total of the calculator. */
    private int total = 0;
    public static final int MAX_VALUE = 100, MIN_VALUE = -100;

    /**
     * Adds two numbers and returns the sum.
     */
    public int add(int a, int b) {
        int sum = a + b;
        remember(sum);
        return sum;
    }

    public int multiply(int a, int b) {
        int result = 0;
        for (int i = 0; i < b; i++) {
            result = add(result, a);
        }
        return result;
    }

    private void remember(int value) {
        total = total + value;
    }

    private void unused() {
    }

    @Override
    public int apply(int a, int b) {
        return add(a, b);
    }
}
"""

BASE_CALCULATOR_SOURCE = """package com.example.calc;

/** Base type of every calculator. */
public abstract class BaseCalculator {
    protected int precision;
}
"""

OPERATION_SOURCE = """package com.example.calc;

/** An arithmetic operation over two operands. */
public interface Operation {
    int apply(int a, int b);
}
"""

CALCULATOR_USER_SOURCE = """package com.example.calc;

/** Uses a calculator to compute totals. */
public class CalculatorUser {
    private Calculator calculator;

    /** Computes the total price of the ordered items. */
    public int computeTotal(int price, int quantity) {
        return calculator.multiply(price, quantity);
    }

    public void reset() {
        calculator.clear();
    }
}
"""

SIMILAR_CALCULATOR_SOURCE = """package com.example.calc;

public class SimilarCalculator {
    public int sum(int a, int b) {
        return a + b;
    }

    public int plus(int a, int b) {
        return a + b;
    }
}
"""

COLOR_SOURCE = """package com.example.model;

/** Supported colors. */
public enum Color {
    RED, GREEN, BLUE;

    private String Label;

    public String label() {
        return Label;
    }
}
"""

BROKEN_SOURCE = """package com.example;

public class Broken {
    void oops( {
    }
}
"""

GENERATED_SOURCE = """public class Generated {
}
"""

SAMPLE_SOURCES = {
    "com/example/calc/Calculator.java": CALCULATOR_SOURCE,
    "com/example/calc/BaseCalculator.java": BASE_CALCULATOR_SOURCE,
    "com/example/calc/Operation.java": OPERATION_SOURCE,
    "com/example/calc/CalculatorUser.java": CALCULATOR_USER_SOURCE,
    "com/example/calc/SimilarCalculator.java": SIMILAR_CALCULATOR_SOURCE,
    "com/example/model/Color.java": COLOR_SOURCE,
    "com/example/Broken.java": BROKEN_SOURCE,
    "build/Generated.java": GENERATED_SOURCE,
}


def write_sources(root: Path, sources: dict[str, str]) -> Path:
    for relative_path, content in sources.items():
        file_path = root / relative_path
        file_path.parent.mkdir(parents=True, exist_ok=True)
        file_path.write_text(content, encoding="utf-8")
    return root


def zip_sources(sources: dict[str, str]) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        for relative_path, content in sources.items():
            archive.writestr(relative_path, content)
    return buffer.getvalue()


# ============================================================================
# Path Fixtures
# ============================================================================


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def java_project(temp_dir: Path) -> Path:
    """The sample project written to disk."""
    return write_sources(temp_dir / "sample", SAMPLE_SOURCES)


@pytest.fixture
def sample_zip() -> bytes:
    return zip_sources(SAMPLE_SOURCES)


# ============================================================================
# Pipeline Fixtures
# ============================================================================


@pytest.fixture
def app_config(temp_dir: Path) -> AppConfig:
    return AppConfig(
        projects_dir=temp_dir / "projects",
        index_dir=temp_dir / "indexes",
        parser=ParserConfig(thread_count=2),
        service=ServiceConfig(worker_count=2, poll_interval=0.05),
    )


@pytest.fixture
def structure(java_project: Path, app_config: AppConfig) -> ProjectStructure:
    """Extracted sample project with relationships built."""
    return EntityExtractor(app_config).extract_project(java_project, name="sample")


@pytest.fixture
def index_engine(structure: ProjectStructure, temp_dir: Path) -> Generator[IndexEngine, None, None]:
    engine = IndexEngine(temp_dir / "index")
    engine.build_index(structure)
    yield engine
    engine.close()


@pytest.fixture
def semantic_analyzer(structure: ProjectStructure, temp_dir: Path) -> SemanticAnalyzer:
    analyzer = SemanticAnalyzer(temp_dir / "project_index")
    analyzer.analyze_project(structure)
    return analyzer
