"""Scenarios creating, building, running and publishing SDK template projects."""

from dataclasses import dataclass
from enum import Flag, StrEnum, auto
from pathlib import Path

from scenario_tests.environment import ScenarioTestFixture
from scenario_tests.execution import TestOutputHelper
from scenario_tests.registry import ScenarioRegistry
from scenario_tests.sdk import DotNetSdkHelper

registry = ScenarioRegistry("scenario_tests.sdk_templates")

OFFLINE = {"Category": "Offline"}
ONLINE = {"resources": "online"}


class DotNetLanguage(StrEnum):
    """Languages supported by the SDK templates."""

    CSHARP = "C#"
    FSHARP = "F#"
    VB = "VB"

    @property
    def suffix(self) -> str:
        """Short form used in project directory names."""
        return {"C#": "cs", "F#": "fs", "VB": "vb"}[self.value]


class DotNetSdkTemplate(StrEnum):
    """Template short names passed to ``dotnet new``."""

    CONSOLE = "console"
    CLASSLIB = "classlib"
    WEB = "web"
    WEBAPI = "webapi"
    XUNIT = "xunit"


class DotNetSdkActions(Flag):
    """Commands to run against a freshly created project."""

    NONE = 0
    BUILD = auto()
    RUN = auto()
    RUN_WEB = auto()
    TEST = auto()
    PUBLISH = auto()
    PUBLISH_SELF_CONTAINED = auto()
    PUBLISH_READY_TO_RUN = auto()
    PUBLISH_TRIMMED = auto()


@dataclass(frozen=True, kw_only=True)
class SdkTemplateTest:
    """Creates a project from a template and runs the requested actions on it."""

    __test__ = False

    name: str
    language: DotNetLanguage
    template: DotNetSdkTemplate
    actions: DotNetSdkActions
    target_rid: str

    async def execute(self, helper: DotNetSdkHelper, test_root: Path) -> Path:
        """Run every requested action in a new project directory under test_root."""
        project_name = f"{self.name}{self.language.suffix.upper()}"
        project_directory = test_root / project_name

        await helper.new(
            self.template,
            project_name,
            project_directory,
            language=self.language,
        )

        if DotNetSdkActions.BUILD in self.actions:
            await helper.build(project_directory)
        if DotNetSdkActions.RUN in self.actions:
            await helper.run(project_directory)
        if DotNetSdkActions.RUN_WEB in self.actions:
            await helper.run_web(project_directory)
        if DotNetSdkActions.TEST in self.actions:
            await helper.test(project_directory)
        if DotNetSdkActions.PUBLISH in self.actions:
            await helper.publish(project_directory)
        if DotNetSdkActions.PUBLISH_SELF_CONTAINED in self.actions:
            await helper.publish(
                project_directory, self_contained=True, rid=self.target_rid
            )
        if DotNetSdkActions.PUBLISH_READY_TO_RUN in self.actions:
            await helper.publish(
                project_directory,
                self_contained=True,
                rid=self.target_rid,
                ready_to_run=True,
            )
        if DotNetSdkActions.PUBLISH_TRIMMED in self.actions:
            await helper.publish(
                project_directory,
                self_contained=True,
                rid=self.target_rid,
                trimmed=True,
            )

        return project_directory


async def _execute(
    output: TestOutputHelper,
    name: str,
    language: DotNetLanguage,
    template: DotNetSdkTemplate,
    actions: DotNetSdkActions,
) -> None:
    fixture = ScenarioTestFixture.from_environment()
    helper = DotNetSdkHelper.from_fixture(output, fixture)
    test = SdkTemplateTest(
        name=name,
        language=language,
        template=template,
        actions=actions,
        target_rid=fixture.target_rid,
    )
    await test.execute(helper, fixture.test_root)


@registry.scenario(traits=OFFLINE)
async def verify_csharp_console_template(output: TestOutputHelper) -> None:
    await _execute(
        output,
        "ConsoleTest",
        DotNetLanguage.CSHARP,
        DotNetSdkTemplate.CONSOLE,
        DotNetSdkActions.BUILD | DotNetSdkActions.RUN | DotNetSdkActions.PUBLISH,
    )


@registry.scenario(traits=OFFLINE)
async def verify_fsharp_console_template(output: TestOutputHelper) -> None:
    await _execute(
        output,
        "ConsoleTest",
        DotNetLanguage.FSHARP,
        DotNetSdkTemplate.CONSOLE,
        DotNetSdkActions.BUILD | DotNetSdkActions.RUN | DotNetSdkActions.PUBLISH,
    )


@registry.scenario(traits=OFFLINE)
async def verify_vb_console_template(output: TestOutputHelper) -> None:
    await _execute(
        output,
        "ConsoleTest",
        DotNetLanguage.VB,
        DotNetSdkTemplate.CONSOLE,
        DotNetSdkActions.BUILD | DotNetSdkActions.RUN | DotNetSdkActions.PUBLISH,
    )


@registry.scenario(traits=OFFLINE)
async def verify_classlib_template(output: TestOutputHelper) -> None:
    await _execute(
        output,
        "ClassLibTest",
        DotNetLanguage.CSHARP,
        DotNetSdkTemplate.CLASSLIB,
        DotNetSdkActions.BUILD | DotNetSdkActions.PUBLISH,
    )


@registry.scenario(traits=OFFLINE)
async def verify_web_template(output: TestOutputHelper) -> None:
    await _execute(
        output,
        "WebTest",
        DotNetLanguage.CSHARP,
        DotNetSdkTemplate.WEB,
        DotNetSdkActions.BUILD | DotNetSdkActions.RUN_WEB | DotNetSdkActions.PUBLISH,
    )


@registry.scenario(traits=ONLINE)
async def verify_xunit_template(output: TestOutputHelper) -> None:
    """Restores test framework packages from the package feed."""
    await _execute(
        output,
        "XUnitTest",
        DotNetLanguage.CSHARP,
        DotNetSdkTemplate.XUNIT,
        DotNetSdkActions.TEST,
    )


@registry.scenario(traits=ONLINE)
async def verify_console_self_contained_publish(output: TestOutputHelper) -> None:
    """Downloads runtime packs for the target runtime identifier."""
    await _execute(
        output,
        "ConsoleSelfContainedTest",
        DotNetLanguage.CSHARP,
        DotNetSdkTemplate.CONSOLE,
        DotNetSdkActions.PUBLISH_SELF_CONTAINED
        | DotNetSdkActions.PUBLISH_READY_TO_RUN
        | DotNetSdkActions.PUBLISH_TRIMMED,
    )


@registry.cleanup
async def shutdown_build_servers() -> None:
    fixture = ScenarioTestFixture.from_environment()
    helper = DotNetSdkHelper.from_fixture(TestOutputHelper(), fixture)
    await helper.shutdown_build_servers(fixture.test_root)
