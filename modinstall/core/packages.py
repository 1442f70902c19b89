"""内置软件包表：纯数据，无逻辑

每个包一条 PackageSpec，由通用安装器 PackageInstaller 消费。
版本、源码包文件名与编译参数与现有部署保持一致，调整版本时只改此处
（或在清单 YAML 中覆盖）。

依赖顺序（→ 表示需要先安装）:
  scalapack → openblas, lapack
  nwchem    → openmpi, openblas, lapack, scalapack
  qe        → openblas, scalapack, hdf5, fftw
其余包只需要 PATH 上可用的 MPI 编译器包装（mpicc / mpif90）。
"""

from __future__ import annotations

from modinstall.core.models import PackageSpec

_MAKE = "make -j{jobs}"
_MAKE_INSTALL = "make install -j{jobs}"
_CMAKE_BUILD = "cmake --build build -j{jobs}"
_CMAKE_INSTALL = "cmake --install build"

_QE_FCFLAGS = "-ffree-form -fallow-argument-mismatch -O3 -march=native"


BUILTIN_PACKAGES: tuple[PackageSpec, ...] = (
    PackageSpec(
        name="openmpi",
        display_name="OpenMPI 5.0.9",
        version="5.0.9",
        tokens=("OPENMPI",),
        archive="openmpi-5.0.9.tar.gz",
        src_dir="openmpi-5.0.9",
        prefix="{install_loc}/openmpi/{version}",
        steps=(
            "./configure FC=gfortran-10 F77=gfortran-10 CC=gcc-10 CXX=g++"
            " --prefix='{prefix}' --enable-mpirun-prefix-by-default",
            _MAKE,
            _MAKE_INSTALL,
        ),
        description="MPI 运行时与编译器包装",
    ),
    PackageSpec(
        name="boost",
        display_name="Boost 1_89_0 (MPI)",
        version="1_89_0",
        tokens=("BOOST",),
        archive="boost_1_89_0.tar.gz",
        src_dir="boost_1_89_0",
        prefix="{install_loc}/Boost/{version}",
        steps=(
            "export CC=mpicc",
            "export CXX=mpicxx",
            "echo 'using mpi ;' > tools/build/src/user-config.jam",
            "./bootstrap.sh --prefix='{prefix}' --with-toolset=gcc",
            "./b2 install -j{jobs} --prefix='{prefix}' --with-mpi"
            " --with-serialization toolset=gcc",
        ),
        description="Boost.MPI / Boost.Serialization",
    ),
    PackageSpec(
        name="fftw",
        display_name="FFTW 3.3.10 (MPI)",
        version="3.3.10",
        tokens=("FFTW",),
        archive="fftw-3.3.10.tar.gz",
        src_dir="fftw-3.3.10",
        prefix="{install_loc}/fftw/{version}",
        steps=(
            "./configure --prefix='{prefix}' --enable-shared --enable-mpi CC=mpicc",
            _MAKE,
            _MAKE_INSTALL,
        ),
        description="快速傅里叶变换库",
    ),
    PackageSpec(
        name="openblas",
        display_name="OpenBLAS 0.3.30",
        version="0.3.30",
        tokens=("OpenBLAS",),
        archive="OpenBLAS-0.3.30.tar.gz",
        src_dir="OpenBLAS-0.3.30",
        prefix="{install_loc}/OpenBLAS/{version}",
        steps=(
            _MAKE,
            "make PREFIX='{prefix}' install",
        ),
        description="优化 BLAS 实现",
    ),
    PackageSpec(
        name="lapack",
        display_name="LAPACK 3.12.1",
        version="3.12.1",
        tokens=("LAPACK", "lapack"),
        archive="lapack-3.12.1.tar.gz",
        src_dir="lapack-3.12.1",
        prefix="{install_loc}/LAPACK/{version}",
        build_subdir="build",
        steps=(
            "cmake -DCMAKE_Fortran_COMPILER=mpif90 -DCMAKE_INSTALL_PREFIX='{prefix}'"
            " -DCMAKE_BUILD_TYPE=Release ..",
            _MAKE,
            _MAKE_INSTALL,
        ),
        description="参考 LAPACK",
    ),
    PackageSpec(
        name="scalapack",
        display_name="Scalapack 2.2.2 (MPI)",
        version="2.2.2",
        tokens=("scalapack",),
        archive="scalapack-2.2.2.tar.gz",
        src_dir="scalapack-2.2.2",
        prefix="{install_loc}/scalapack/{version}",
        build_subdir="build",
        depends=("openblas", "lapack"),
        steps=(
            "cmake .. -DCMAKE_Fortran_COMPILER=mpif90 -DCMAKE_INSTALL_PREFIX='{prefix}'"
            " -DCMAKE_BUILD_TYPE=Release"
            " -DBLAS_LIBRARIES='{dep[openblas]}/lib/libopenblas.a'"
            " -DLAPACK_LIBRARIES='{dep[lapack]}/lib/liblapack.a'"
            " -DCMAKE_C_COMPILER=mpicc",
            _MAKE,
            "make install",
        ),
        description="分布式稠密线性代数",
    ),
    PackageSpec(
        name="hdf5",
        display_name="HDF5 1.14.6 (Parallel)",
        version="1.14.6",
        tokens=("hdf5",),
        archive="hdf5_1.14.6.tar.gz",
        src_dir="hdf5-hdf5_1.14.6",
        prefix="{install_loc}/HDF5/{version}",
        steps=(
            "./configure --prefix='{prefix}' --enable-parallel --enable-fortran"
            " CC=mpicc FC=mpif90",
            _MAKE,
            _MAKE_INSTALL,
        ),
        description="并行 HDF5 (含 Fortran 接口)",
    ),
    PackageSpec(
        name="libint",
        display_name="Libint 2.11.2",
        version="2.11.2",
        tokens=("libint",),
        archive="libint-2.11.2.tar.gz",
        src_dir="libint-2.11.2",
        prefix="{install_loc}/libint/{version}",
        build_subdir="build",
        steps=(
            "cmake .. -DCMAKE_INSTALL_PREFIX='{prefix}' -DBUILD_SHARED_LIBS=ON"
            " -DENABLE_FORTRAN=ON -DENABLE_MPI=ON -DUSE_MPI=ON"
            " -DCMAKE_C_COMPILER=mpicc -DCMAKE_CXX_COMPILER=mpicxx"
            " -DCMAKE_Fortran_COMPILER=mpif90",
            _MAKE,
            "make install",
        ),
        description="高斯基组电子积分库",
    ),
    PackageSpec(
        name="libxc",
        display_name="libxc 7.0.0",
        version="7.0.0",
        tokens=("libxc",),
        archive="libxc-7.0.0.tar.bz2",
        src_dir="libxc-7.0.0",
        rename_to="libxc-build",
        prefix="{install_loc}/libxc/{version}",
        steps=(
            "cmake -S . -B build -DCMAKE_Fortran_COMPILER=mpif90"
            " -DCMAKE_INSTALL_PREFIX='{prefix}' -DENABLE_FORTRAN=ON"
            " -DBUILD_SHARED_LIBS=ON",
            _CMAKE_BUILD,
            _CMAKE_INSTALL,
        ),
        description="交换关联泛函库",
    ),
    PackageSpec(
        name="json",
        display_name="nlohmann JSON 3.12.0",
        version="3.12.0",
        tokens=("json",),
        archive="json-3.12.0.tar.gz",
        src_dir="json-3.12.0",
        rename_to="json-build",
        prefix="{install_loc}/json/{version}",
        steps=(
            "mkdir -p build",
            "cmake -S . -B build -DCMAKE_INSTALL_PREFIX='{prefix}'",
            _CMAKE_BUILD,
            _CMAKE_INSTALL,
        ),
        description="C++ JSON 头文件库",
    ),
    PackageSpec(
        name="wannier90",
        display_name="wannier90",
        version="3.1.0",
        tokens=("wannier90",),
        source_dir="{install_loc}/wannier90-develop",
        prefix="{install_loc}/wannier90/{version}",
        build_subdir="build",
        steps=(
            "cmake .. -DCMAKE_INSTALL_PREFIX='{prefix}' -DCMAKE_Fortran_COMPILER=mpif90"
            " -DCMAKE_C_COMPILER=mpicc -DCMAKE_BUILD_TYPE=Release",
            _MAKE,
            "make install",
        ),
        description="最大局域化 Wannier 函数（使用已检出的 develop 源码树）",
    ),
    PackageSpec(
        name="nwchem",
        display_name="NWChem 7.2.0",
        version="7.2.0",
        tokens=("nwchem",),
        archive="nwchem-7.2.0.tar.gz",
        archive_dir="{install_nwchem}/NWChem",
        src_dir="nwchem-7.2.0-release",
        rename_to="7.2.0",
        prefix="{install_nwchem}/NWChem/{version}",
        url="https://github.com/nwchemgit/nwchem/archive/refs/tags/v{version}-release.tar.gz",
        in_place=True,
        required_paths=("{prefix}/src",),
        depends=("openmpi", "openblas", "lapack", "scalapack"),
        env={
            "NWCHEM_TARGET": "LINUX64",
            "NWCHEM_MODULES": "all",
            "USE_MPI": "y",
            "USE_OPENMP": "y",
            "USE_SCALAPACK": "y",
            "MPIEXEC": "mpirun",
            "MPICC": "mpicc",
            "MPIFC": "mpif90",
            "CC": "gcc",
            "FC": "gfortran",
            "BLASOPT": "-L{dep[openblas]}/lib -lopenblas -lpthread",
            "LAPACK_LIB": "-L{dep[lapack]}/lib -llapack",
            "LAPACKOPT": "-L{dep[lapack]}/lib -llapack",
            "SCALAPACK": "-L{dep[scalapack]}/lib -lscalapack",
            "BLAS_SIZE": "4",
            "LAPACK_SIZE": "4",
            "SCALAPACK_SIZE": "4",
            "USE_64TO32": "y",
        },
        steps=(
            "export PATH=$PATH:'{dep[openmpi]}/bin'",
            "export NWCHEM_TOP=$PWD",
            "cd src",
            "make clean",
            "make 64_to_32",
            "make nwchem_config",
            "make -j{jobs} > make.log 2>&1",
        ),
        description="量子化学全套程序（原位编译，源码目录即安装前缀）",
    ),
    PackageSpec(
        name="qe",
        display_name="Quantum ESPRESSO 7.4.1",
        version="7.4.1",
        tokens=("qe",),
        archive="q-e-qe-7.4.1.tar.gz",
        src_dir="q-e-qe-7.4.1",
        prefix="{install_loc}/qe/{version}",
        depends=("openblas", "scalapack", "hdf5", "fftw"),
        env={"FCFLAGS": _QE_FCFLAGS, "FFLAGS": _QE_FCFLAGS},
        steps=(
            "cmake -S . -B build"
            " -DCMAKE_INSTALL_PREFIX='{prefix}'"
            " -DCMAKE_Fortran_COMPILER=mpif90"
            " -DCMAKE_C_COMPILER=mpicc"
            " -DQE_ENABLE_MPI=ON"
            " -DQE_ENABLE_OPENMP=ON"
            " -DQE_ENABLE_FFTW=ON"
            " -DQE_ENABLE_LIBXC=OFF"
            " -DQE_FOX_INTERNAL=ON"
            " -DQE_ENABLE_SCALAPACK=ON"
            " -DQE_ENABLE_WANNIER90=ON"
            " -DSCALAPACK_DIR='{dep[scalapack]}'"
            " -DSCALAPACK_LIBRARY='{dep[scalapack]}/lib/libscalapack.so'"
            " -DBLAS_LIBRARIES='{dep[openblas]}/lib/libopenblas.so'"
            " -DLAPACK_LIBRARIES='{dep[openblas]}/lib/libopenblas.so'"
            " -DQE_ENABLE_HDF5=ON"
            " -DHDF5_ROOT='{dep[hdf5]}'"
            " -DHDF5_INCLUDE_DIR='{dep[hdf5]}/include'"
            " -DHDF5_LIBRARY='{dep[hdf5]}/lib/libhdf5.so'"
            " -DHDF5_HL_LIBRARY='{dep[hdf5]}/lib/libhdf5_hl.so'"
            " -DHDF5_Fortran_INCLUDE_DIR='{dep[hdf5]}/include'"
            " -DHDF5_Fortran_LIBRARY='{dep[hdf5]}/lib/libhdf5_fortran.so'"
            " -DFFTW3_INCLUDE_DIRS='{dep[fftw]}/include'"
            " -DFFTW3_LIBRARY='{dep[fftw]}/lib/libfftw3.so;{dep[fftw]}/lib/libfftw3_mpi.so'"
            " -DFFTW3_DOUBLE='{dep[fftw]}/lib/libfftw3.so'"
            " -DFFTW3_DOUBLE_OPENMP='{dep[fftw]}/lib/libfftw3_omp.so'",
            _CMAKE_BUILD,
            _CMAKE_INSTALL,
        ),
        description="平面波赝势第一性原理程序",
    ),
)
