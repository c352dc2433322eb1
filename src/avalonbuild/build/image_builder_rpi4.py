"""
Build scripts for the Raspberry Pi 4B (aarch64, bare metal).

Images are linked with ``aarch64-none-elf`` binutils against the circle
runtime and loaded at 0x80000. Every flag token below is a compiler or
linker input; the text is reproduced exactly, including whitespace.
"""

from typing import Sequence

from ..config.platform_config import CORE_VERSION, BuildFlags, CoreVersion
from ..host import HostOS
from .image_builder import NEWLINE, ImageBuilder

LINKER_SCRIPT = (
    "ENTRY(_start)\n"
    "\n"
    "SECTIONS\n"
    "{\n"
    "\t.init : {\n"
    "\t\t*(.init)\n"
    "\t}\n"
    "\n"
    "\t.text : {\n"
    "\t\t*(.text*)\n"
    "\n"
    "\t\t_etext = .;\n"
    "\t}\n"
    "\n"
    "\t.rodata : {\n"
    "\t\t*(.rodata*)\n"
    "\t}\n"
    "\n"
    "\t.init_array : {\n"
    "\t\t__init_start = .;\n"
    "\n"
    "\t\tKEEP(*(.init_array*))\n"
    "\n"
    "\t\t__init_end = .;\n"
    "\t}\n"
    "\n"
    "\t.ARM.exidx : {\n"
    "\t\t__exidx_start = .;\n"
    "\n"
    "\t\t*(.ARM.exidx*)\n"
    "\n"
    "\t\t__exidx_end = .;\n"
    "\t}\n"
    "\n"
    "\t.eh_frame : {\n"
    "\t\t*(.eh_frame*)\n"
    "\t}\n"
    "\n"
    "\t.data : {\n"
    "\t\t*(.data*)\n"
    "\t}\n"
    "\n"
    "\t.bss : {\n"
    "\t\t__bss_start = .;\n"
    "\n"
    "\t\t*(.bss*)\n"
    "\t\t*(COMMON)\n"
    "\n"
    "\t\t_end = .;\n"
    "\t\tend = .;\n"
    "\t}\n"
    "}\n"
)

ARCHCPU = "ARCHCPU\t?= -DAARCH=64 -mcpu=cortex-a72 -mlittle-endian\n"

CIRCLE_DEFINES = (
    'CPPFLAGS += -DREALTIME -DDEFAULT_KEYMAP="US" -D__circle__=450100 -DRASPPI=4'
    " -DSTDLIB_SUPPORT=1 -D__VCCOREVER__=0x04000000\n"
    "CPPFLAGS += -U__unix__ -U__linux__\n"
    "CPPFLAGS += -DSYSPLATFORM_STD_MUTEX\n"
)

AUDIO_DEFINES = (
    "CPPFLAGS += -DPROCESS_SERIAL_MIDI\n"
    "CPPFLAGS += -DAUDIO_BLOCK_SAMPLES=128 -DAUDIO_SAMPLE_RATE_EXACT=48000.0f\n"
    "CPPFLAGS += -D__GNUC_PYTHON__\n"
)

LIBRARY_CPPFLAGS = (
    "CPPFLAGS += -c -Wall -fsigned-char -ffreestanding $(COMMON_FLAGS)\n"
    "CPPFLAGS += -ffunction-sections -fdata-sections -fno-exceptions -fno-rtti\n"
    "CPPFLAGS += -Wno-error=narrowing\n"
    "CPPFLAGS += $(ARCHCPU)\n"
) + CIRCLE_DEFINES + AUDIO_DEFINES

CXXFLAGS = "CXXFLAGS += -std=gnu++17 -fpermissive -fno-rtti -fno-threadsafe-statics -felide-constructors\n"

LINK_FLAGS = (
    "LOADADDR = 0x80000\n"
    "LDFLAGS += -O2 --gc-sections --relax --section-start=.init=$(LOADADDR)\n"
)

TOOL_SETUP = (
    "BASE_DIR = $(CURDIR)\n"
    "PATH +=:$(COMPILER_PATH)\n"
    "ARCH=aarch64\n"
)


def _newlib(compiler: str) -> str:
    return (
        f'LIBGCC    = "$(shell {compiler}gcc $(ARCHCPU) -print-file-name=libgcc.a)"\n'
        f'LIBC      = "$(shell {compiler}gcc $(ARCHCPU) -print-file-name=libc.a)"\n'
        f'LIBM\t  = "$(shell {compiler}gcc $(ARCHCPU) -print-file-name=libm.a)"\n'
        f'LIBNOSYS  = "$(shell {compiler}gcc $(ARCHCPU) -print-file-name=libnosys.a)"\n'
        f'LIBSTDCPP = "$(shell {compiler}gcc $(ARCHCPU) -print-file-name=libstdc++.a)"\n'
        "CIRCLE_LIBS += $(LIBSTDCPP) $(LIBM) $(LIBC) $(LIBGCC) $(LIBNOSYS)\n"
    )


class ImageBuilderRpi4(ImageBuilder):
    """Build script emitter for the Raspberry Pi 4B."""

    MAKEFILE_HOSTS = frozenset({HostOS.LINUX})
    TEST_MAKEFILE_HOSTS = frozenset({HostOS.LINUX, HostOS.MACOS})
    EFX_MAKEFILE_HOSTS = frozenset({HostOS.LINUX, HostOS.MACOS})

    def linker_script(self) -> str:
        return LINKER_SCRIPT

    def makefile(self) -> str:
        self._require_host(self.MAKEFILE_HOSTS, "Makefile")

        legacy = self.config.legacy_image_name
        return (
            "CPPFILT\t= $(TOOL_PREFIX)c++filt\n"
            + ARCHCPU
            + "CPPFLAGS += -ffreestanding -fno-rtti\n"
            "CPPFLAGS += $(ARCHCPU)\n"
            'CPPFLAGS += -DREALTIME -DDEFAULT_KEYMAP="US" -D__circle__=450100 -DRASPPI=4'
            " -DRASPPI4 -DSTDLIB_SUPPORT=1 -D__VCCOREVER__=0x04000000\n"
            "CPPFLAGS += -U__unix__ -U__linux__\n"
            "CPPFLAGS += -DSYSPLATFORM_STD_MUTEX\n"
            "CPPFLAGS += -D__GNUC_PYTHON__\n"
            "#CPPFLAGS += -DARDUINO=10815 -DTEENSYDUINO -D__arm__\n"
            "\n"
            + _newlib("$(TOOL_PREFIX)")
            + "\n"
            "INCLUDE_DIRS_LIST +=\n"
            "INCLUDE_DIRS += $(addprefix -I./include/, $(INCLUDE_DIRS_LIST)) \n"
            "CPPFLAGS += $(INCLUDE_DIRS)\n"
            "CFLAGS +=\n"
            "CXXFLAGS += -Wno-aligned-new\n"
            "\n"
            + LINK_FLAGS
            + "\n"
            "SYS_STAT_LIBS += --whole-archive $(addprefix -l:, $(DATAPAK_LIST)) --no-whole-archive\n"
            "\n"
            "all: $(TARGET)\n"
            "%.o: %.cpp\n"
            "\t$(CXX) $(CPPFLAGS) $(CXXFLAGS) $(RELEASEFLAGS) -c -o $@ $<\n"
            "$(TARGET): $(OBJ_FILES)\n"
            "\t$(LD) -o $(TARGET).elf -Map $(TARGET).map $(LDFLAGS) $(LD_FILE) \\\n"
            "\t\t$(CRTBEGIN) $(OBJ_FILES) $(SYS_STAT_LIBS) $(CORE_LIBS) \\\n"
            "\t--start-group $(CIRCLE_LIBS) --end-group $(CRTEND)\n"
            "\t$(OBJDUMP) -d $(TARGET).elf | $(CPPFILT) > $(TARGET).lst\n"
            "\t$(OBJCOPY) $(TARGET).elf -O binary $(TARGET).img\n"
            f"\t$-cp $(TARGET).img {legacy}\n"
            "clean:\n"
            "\t-rm -f $(OBJ_FILES)\n"
            "\t-rm -f $(TARGET)\n"
            "\n"
        )

    def test_makefile(
        self,
        tools_directory: str,
        libs_directory: str,
        dat_filename: str,
        test_app_name: str,
        ir_data_name: str,
        include_directories: Sequence[str],
        core_version: CoreVersion = CORE_VERSION,
    ) -> str:
        self._require_host(self.TEST_MAKEFILE_HOSTS, "Test Makefile")

        config = self.config
        include_dirs = "".join(f"-I{directory} " for directory in include_directories)
        app_objects = f"{test_app_name}.o {ir_data_name}.o"

        text = "export AVALON_REV=2\n"
        text += f"COMPILER_PATH = {tools_directory}/bin/\n"
        text += f"TOOL_PREFIX={config.toolchain_prefix}-" + NEWLINE
        text += TOOL_SETUP
        text += "INCLUDE_DIRS = " + include_dirs + NEWLINE
        text += "LIBS_DIR = " + libs_directory + NEWLINE
        text += "EFX_FILE = " + dat_filename + NEWLINE
        text += "CORE_FILENAME = " + core_version.dat_filename + NEWLINE
        text += (
            "CC      = $(TOOL_PREFIX)gcc\n"
            "CXX     = $(TOOL_PREFIX)g++\n"
            "LD      = $(TOOL_PREFIX)ld\n"
            "OBJCOPY = $(TOOL_PREFIX)objcopy\n"
            "OBJDUMP = $(TOOL_PREFIX)objdump\n"
            "CPPFILT\t= $(TOOL_PREFIX)c++filt\n"
        )
        text += ARCHCPU
        text += LIBRARY_CPPFLAGS
        text += _newlib("$(COMPILER_PATH)/$(TOOL_PREFIX)")
        text += (
            "DEFAULTFLAGS = -O2 -D NDEBUG -DUSB_MIDI_AUDIO_SERIAL\n"
            "\n"
            "CPPFLAGS += -DRASPPI4 -DARDUINO=10815 -DTEENSYDUINO -D__arm__\n"
            "ifeq ($(AVALON_REV),2)\n"
            "CPPFLAGS += -DAVALON_REV2\n"
            "endif\n"
            "CPPFLAGS += $(INCLUDE_DIRS)\n"
        )
        text += CXXFLAGS
        text += LINK_FLAGS
        text += f"LD_FILE  = -T./{config.linker_filename}" + NEWLINE
        text += "LDFLAGS  += -L./lib -L../efx\n" "LDFLAGS  += -L./ -L$(LIBS_DIR)\n"
        text += "CORE_LIBS = -l:$(CORE_FILENAME)\n"
        text += f"TARGET_HEXNAME={test_app_name}.hex\n"
        text += f"all: {test_app_name}" + NEWLINE + NEWLINE
        text += "%.o:%.cpp" + NEWLINE
        text += "\t$(CXX) $(CPPFLAGS) $(CXXFLAGS) $(DEFAULTFLAGS) $(INCLUDE_DIRS) -c -o $@ $<\n\n"
        text += f"{test_app_name}: {app_objects}\n"
        text += (
            f"\t$(LD) $(COMMON_FLAGS) -o {test_app_name} $(LDFLAGS) $(LD_FILE) "
            f"{app_objects} -l:$(EFX_FILE) $(CORE_LIBS) --start-group $(CIRCLE_LIBS) --end-group\n"
        )
        text += "clean:" + NEWLINE
        text += f"\t-rm -rf {test_app_name} {app_objects} \n"
        return text

    def efx_makefile_inc(self, flags: BuildFlags, cpp_flags: str = "", quiet: bool = True) -> str:
        self._require_host(self.EFX_MAKEFILE_HOSTS, "Effect Makefile include")

        config = self.config
        common_flags = "COMMON_FLAGS +="
        if flags.no_printf:
            common_flags += " -DNO_EFX_PRINTF"

        if flags.is_debug:
            default_flags = "DEFAULTFLAGS   = $(DEBUGFLAGS)"
        else:
            default_flags = "DEFAULTFLAGS   = $(RELEASEFLAGS)"

        release_flags = "RELEASEFLAGS   = -s -fvisibility=hidden -D NDEBUG -DUSB_MIDI_AUDIO_SERIAL"
        if flags.enable_fast_math:
            release_flags += " -ffast-math"
        release_flags += " " + flags.optimization_flag

        text = "TMOD=@\n" if quiet else ""
        text += "COMPILER_PATH = $(CURDIR)/tools/bin/" + NEWLINE
        text += f"TOOL_PREFIX={config.toolchain_prefix}-" + NEWLINE
        text += TOOL_SETUP
        text += f"PLATFORM_NAME={config.product_name}" + NEWLINE
        text += (
            "INCLUDE_PATH = $(CURDIR)/extinc\n"
            "SRCDIR = $(BASE_DIR)/src\n"
            "OBJDIR = $(BASE_DIR)/obj\n"
            "INCDIR = $(BASE_DIR)/inc\n"
            "EFXDIR=$(BASE_DIR)/../../efx\n"
            "OUTPUT_DIRS=$(EFXDIR) $(OBJDIR)\n"
            "MKDIR_P = mkdir -p\n"
            "\n"
        )
        text += (
            "CC      = $(TOOL_PREFIX)gcc\n"
            "CXX     = $(TOOL_PREFIX)g++\n"
            "AS      = $(TOOL_PREFIX)as\n"
            "AR      = $(TOOL_PREFIX)gcc-ar\n"
            "LD      = $(TOOL_PREFIX)ld\n"
            "OBJCOPY = $(TOOL_PREFIX)objcopy\n"
            "OBJDUMP = $(TOOL_PREFIX)objdump\n"
            "CPPFILT\t= $(TOOL_PREFIX)c++filt\n"
        )
        text += ARCHCPU
        text += "\n# Compiler and Linker settings\n"
        text += common_flags + NEWLINE
        text += "\n# Preprocessor flags\n"
        text += LIBRARY_CPPFLAGS
        text += "CPPFLAGS += " + cpp_flags + NEWLINE
        text += (
            "CPPFLAGS += -DRASPPI4 -DARDUINO=10815 -DTEENSYDUINO -D__arm__\n"
            "INCLUDE_PATHS = -I$(INCLUDE_PATH) -I$(INCLUDE_PATH)/cores"
            " -I$(BASE_DIR)/inc/$(TARGET_NAME) -I$(BASE_DIR)/src -I$(BASE_DIR)/src/inc\n"
            "CPPFLAGS += $(INCLUDE_PATHS)\n"
            "\n"
            "ifeq ($(AVALON_REV),2)\n"
            "CPPFLAGS += -DAVALON_REV2\n"
            "endif\n"
            "\n"
            "RPI4LIBS_INCLUDE_LIST = arm_math globalCompat sysPlatformRpi4 Avalon Stride Audio\n"
            'RPI4LIBS_COMMA_LIST = "arm_math,globalCompat,sysPlatfromRpi4,Avalon,Stride,Audio"\n'
            "\n"
            "RPI4LIBS_INCLUDE_PATHS = $(addprefix -I$(INCLUDE_PATH)/, $(RPI4LIBS_INCLUDE_LIST))\n"
            "INCLUDE_PATHS += $(RPI4LIBS_INCLUDE_PATHS)\n"
            "CPPFLAGS += $(RPI4LIBS_INCLUDE_PATHS)\n"
            "\n"
            "CFLAGS   += -std=gnu99 $(COMMON_FLAGS)\n"
        )
        text += CXXFLAGS
        text += (
            "\n"
            "# Archiver flags\n"
            "ARFLAGS   = -cr\n"
            "\n"
            "DEBUGFLAGS     = -g -O0 -D_DEBUG -DUSB_DUAL_SERIAL\n"
        )
        text += release_flags + NEWLINE
        text += default_flags + NEWLINE
        text += (
            "\nSTATIC_TARGET_LIST = $(TARGET_NAME).$(PLATFORM_NAME).dat\n"
            "\n"
            "API_HEADERS = $(addprefix $(INCDIR)/, $(API_HEADER_LIST))\n"
            "\n"
            "SOURCES_CPP = $(addprefix $(SRCDIR)/, $(CPP_SRC_LIST))\n"
            "SOURCES_C = $(addprefix $(SRCDIR)/, $(C_SRC_LIST))\n"
            "SOURCES_S = $(addprefix $(SRCDIR)/, $(S_SRC_LIST))\n"
            "\n"
            "OBJECTS_CPP = $(addsuffix .o, $(addprefix $(OBJDIR)/, $(CPP_SRC_LIST)))\n"
            "OBJECTS_C = $(addsuffix .o, $(addprefix $(OBJDIR)/, $(C_SRC_LIST)))\n"
            "OBJECTS_S = $(addsuffix .o, $(addprefix $(OBJDIR)/, $(S_SRC_LIST)))\n"
            "\n"
            "PREPROC_DEFINES = $(addprefix -D, $(PREPROC_DEFINES_LIST))\n"
            "CPPFLAGS += $(PREPROC_DEFINES)\n"
            "\n"
        )
        text += "STATIC_TARGET = $(EFXDIR)/$(STATIC_TARGET_LIST)\n" + NEWLINE
        text += (
            "all: directories api_headers $(STATIC_TARGET)\n"
            "\n"
            "directories:\n"
            "\t$(TMOD)$(MKDIR_P) $(OUTPUT_DIRS)\n"
            "\n"
            "api_headers:\n"
            "\t$(TMOD)-cp -f $(API_HEADERS) $(EFXDIR)\n"
            "\n"
            "$(STATIC_TARGET): $(OBJECTS_C) $(OBJECTS_CPP) $(OBJECTS_S)\n"
            "\t$(AR) $(ARFLAGS) $(STATIC_TARGET) $(OBJECTS_C) $(OBJECTS_CPP) $(OBJECTS_S)\n"
            "\n"
            "$(OBJDIR)%.cpp.o: $(SRCDIR)%.cpp\n"
            "\t$(TMOD)$(CXX) $(CPPFLAGS) $(CXXFLAGS) $(DEFAULTFLAGS) -c -o $@ $<\n"
            "\n"
            "$(OBJDIR)%.c.o: $(SRCDIR)%.c\n"
            "\t$(TMOD)$(CC) $(CPPFLAGS) $(CFLAGS) $(DEFAULTFLAGS) -c -o $@ $<\n"
            "\n"
            "$(OBJDIR)%.S.o: $(SRCDIR)%.S\n"
            "\t$(TMOD)$(CC) $(CPPFLAGS) -x assembler-with-cpp $(DEFAULTFLAGS) -c -o $@ $<\n"
            "\n"
            "clean:\n"
            "\t$(TMOD)-rm -f $(OBJECTS_C) $(OBJECTS_CPP) $(OBJECTS_S)\n"
            "\t$(TMOD)-rm -f $(DYN_TARGET) $(STATIC_TARGET)\n"
            "\t$(TMOD)-rm -f $(EFXDIR)/*.h $(EFXDIR)/*.efx\n"
            "\t$(TMOD)-rm -f $(ZIPDIR)/$(TARGET_NAME).zip\n"
            "printvar:\n"
            "\t$(foreach v, $(.VARIABLES), $(info $(v) = $($(v))))\n"
            ".PHONY: directories api_headers clean printvar\n"
            "\n"
        )
        return text
