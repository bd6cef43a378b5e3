"""Built-in desired state used when template-manifest.json cannot be read."""

from unitemplate.config.schemas import (
    AnalyzerSpec,
    ConfigFileEntry,
    NugetPackageSpec,
    SubmoduleSpec,
    TemplateManifest,
)

NUGET_FOR_UNITY_URL = "https://github.com/GlitchEnzo/NuGetForUnity.git?path=/src/NuGetForUnity"


def default_manifest() -> TemplateManifest:
    """Get the hardcoded default template manifest."""
    return TemplateManifest(
        packages=[
            "com.unity.textmeshpro",
            "com.unity.ugui",
            "com.unity.inputsystem",
            "com.unity.addressables",
        ],
        git_packages=[
            NUGET_FOR_UNITY_URL,
            "https://github.com/Cysharp/R3.git?path=src/R3.Unity/Assets/R3.Unity",
            "https://github.com/Cysharp/UniTask.git?path=src/UniTask/Assets/Plugins/UniTask",
            "https://github.com/annulusgames/LitMotion.git?path=src/LitMotion/Assets/LitMotion",
            "https://github.com/marijnz/unity-toolbar-extender.git",
        ],
        folder_structure=[
            "Assets/Scripts",
            "Assets/Sprites",
            "Assets/Audio/BGM",
            "Assets/Audio/SE",
            "Assets/Materials",
            "Assets/Prefabs",
            "Assets/ScriptableObjects",
            "Assets/Editor",
            "Assets/Others",
        ],
        submodules=[
            SubmoduleSpec(
                name="my-unity-utils",
                url="https://github.com/void2610/my-unity-utils.git",
                link_name="Utils",
            ),
        ],
        analyzers=AnalyzerSpec(
            submodule_name="my-unity-analyzers",
            url="https://github.com/void2610/my-unity-analyzers.git",
            project_path="MyUnityAnalyzers/MyUnityAnalyzers.csproj",
        ),
        config_files=[
            ConfigFileEntry(source=".editorconfig", destination="projectRoot"),
            ConfigFileEntry(source="csc.rsp", destination="assets"),
        ],
        nuget_packages=[
            NugetPackageSpec(id="R3", version="1.2.9"),
            NugetPackageSpec(id="ObservableCollections.R3", version="3.3.3"),
        ],
        license_folder_path="Assets/LicenseMaster",
    )
